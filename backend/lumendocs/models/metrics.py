# FILE: backend/lumendocs/models/metrics.py
# Read models for task outcome metrics served under /health/metrics.

from typing import Dict, List

from pydantic import BaseModel, Field


class TaskMetricsOut(BaseModel):
    taskType: str
    successCount: int = 0
    failureCount: int = 0
    totalCount: int = 0
    successRate: float = 0.0
    averageDurationSeconds: float = 0.0
    minDurationSeconds: float = 0.0
    maxDurationSeconds: float = 0.0


class SystemMetricsOut(BaseModel):
    queueDepth: int = 0
    totalProcessed: int = 0
    totalFailed: int = 0
    overallSuccessRate: float = 0.0


class MetricsAlert(BaseModel):
    level: str
    type: str
    message: str
    metadata: Dict[str, str] = Field(default_factory=dict)


class MetricsReportOut(BaseModel):
    status: str
    healthy: bool
    systemMetrics: SystemMetricsOut
    taskMetrics: Dict[str, TaskMetricsOut]
    alerts: List[MetricsAlert]
