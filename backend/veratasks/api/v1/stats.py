"""Statistics endpoint.

GET /api/v1/stats — totals, completion rate, time figures and distributions
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from veratasks.api.deps import get_task_workflow
from veratasks.models.stats import TaskStats
from veratasks.services.tasks import TaskWorkflow

router = APIRouter(prefix="/api/v1", tags=["stats"])


@router.get("/stats", response_model=TaskStats)
async def get_stats(workflow: TaskWorkflow = Depends(get_task_workflow)) -> TaskStats:
    return await workflow.stats()
