# FILE: backend/lumendocs/api/endpoints/health.py
# Task metrics recorded by the workers, read back from Redis.

import asyncio
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from ...models.metrics import MetricsReportOut, TaskMetricsOut
from ...services.metrics_service import TaskMetricsRecorder
from .dependencies import get_metrics

router = APIRouter(tags=["Health Check"])


@router.get("/metrics", response_model=MetricsReportOut)
async def get_metrics_report(recorder: Annotated[TaskMetricsRecorder, Depends(get_metrics)]):
    return await asyncio.to_thread(recorder.report)


@router.get("/metrics/task/{taskType}", response_model=TaskMetricsOut)
async def get_task_metrics(taskType: str, recorder: Annotated[TaskMetricsRecorder, Depends(get_metrics)]):
    metrics = await asyncio.to_thread(recorder.task_metrics, taskType)
    if metrics.totalCount == 0:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No metrics recorded for task type '{taskType}'.",
        )
    return metrics
