# FILE: backend/lumendocs/services/metrics_service.py
# Task outcome metrics kept in Redis, so the API process can read what the
# worker processes record.
# 1. Recording never fails a task: Redis errors are logged and dropped.
# 2. Only the most recent MAX_DURATIONS durations per task type are kept.

from typing import Dict, List

import redis
import structlog

from ..models.metrics import MetricsAlert, MetricsReportOut, SystemMetricsOut, TaskMetricsOut

logger = structlog.get_logger(__name__)

METRICS_PREFIX = "lumendocs:metrics"
MAX_DURATIONS = 100


class TaskMetricsRecorder:
    def __init__(
        self,
        redis_client: redis.Redis,
        queue_name: str = "celery",
        min_success_rate: float = 0.9,
        max_queue_depth: int = 100,
    ):
        self.redis = redis_client
        self.queue_name = queue_name
        self.min_success_rate = min_success_rate
        self.max_queue_depth = max_queue_depth

    def _types_key(self) -> str:
        return f"{METRICS_PREFIX}:task_types"

    def _counts_key(self, task_type: str) -> str:
        return f"{METRICS_PREFIX}:task:{task_type}:counts"

    def _durations_key(self, task_type: str) -> str:
        return f"{METRICS_PREFIX}:task:{task_type}:durations"

    def record_success(self, task_type: str, duration_seconds: float) -> None:
        self._record(task_type, "success", duration_seconds)

    def record_failure(self, task_type: str, duration_seconds: float) -> None:
        self._record(task_type, "failure", duration_seconds)

    def _record(self, task_type: str, outcome: str, duration_seconds: float) -> None:
        try:
            pipe = self.redis.pipeline()
            pipe.sadd(self._types_key(), task_type)
            pipe.hincrby(self._counts_key(task_type), outcome, 1)
            pipe.lpush(self._durations_key(task_type), f"{duration_seconds:.3f}")
            pipe.ltrim(self._durations_key(task_type), 0, MAX_DURATIONS - 1)
            pipe.execute()
        except redis.RedisError as e:
            logger.warning("metrics.record_failed", task_type=task_type, outcome=outcome, error=str(e))
            return
        logger.debug("metrics.recorded", task_type=task_type, outcome=outcome, duration=duration_seconds)

    def task_types(self) -> List[str]:
        return sorted(self.redis.smembers(self._types_key()))

    def task_metrics(self, task_type: str) -> TaskMetricsOut:
        counts = self.redis.hgetall(self._counts_key(task_type))
        durations = [float(d) for d in self.redis.lrange(self._durations_key(task_type), 0, -1)]

        success = int(counts.get("success", 0))
        failure = int(counts.get("failure", 0))
        total = success + failure
        return TaskMetricsOut(
            taskType=task_type,
            successCount=success,
            failureCount=failure,
            totalCount=total,
            successRate=success / total if total else 0.0,
            averageDurationSeconds=sum(durations) / len(durations) if durations else 0.0,
            minDurationSeconds=min(durations, default=0.0),
            maxDurationSeconds=max(durations, default=0.0),
        )

    def queue_depth(self) -> int:
        # The Redis broker keeps each pending queue as a list under its name.
        return int(self.redis.llen(self.queue_name))

    def system_metrics(self, tasks: Dict[str, TaskMetricsOut]) -> SystemMetricsOut:
        processed = sum(t.totalCount for t in tasks.values())
        failed = sum(t.failureCount for t in tasks.values())
        return SystemMetricsOut(
            queueDepth=self.queue_depth(),
            totalProcessed=processed,
            totalFailed=failed,
            overallSuccessRate=(processed - failed) / processed if processed else 0.0,
        )

    def report(self) -> MetricsReportOut:
        tasks = {task_type: self.task_metrics(task_type) for task_type in self.task_types()}
        system = self.system_metrics(tasks)
        alerts = self._alerts(system, tasks)

        status = "healthy"
        if alerts:
            status = "critical" if any(a.level == "critical" for a in alerts) else "unhealthy"
        return MetricsReportOut(
            status=status,
            healthy=not alerts,
            systemMetrics=system,
            taskMetrics=tasks,
            alerts=alerts,
        )

    def _alerts(self, system: SystemMetricsOut, tasks: Dict[str, TaskMetricsOut]) -> List[MetricsAlert]:
        alerts = []
        if system.totalProcessed and system.overallSuccessRate < self.min_success_rate:
            alerts.append(MetricsAlert(
                level="error",
                type="high_error_rate",
                message=f"Overall success rate {system.overallSuccessRate:.2%} is below {self.min_success_rate:.2%}",
                metadata={"current_rate": f"{system.overallSuccessRate:.2f}", "threshold": f"{self.min_success_rate:.2f}"},
            ))
        if system.queueDepth > self.max_queue_depth:
            alerts.append(MetricsAlert(
                level="critical" if system.queueDepth > 2 * self.max_queue_depth else "warning",
                type="queue_backup",
                message=f"Queue depth {system.queueDepth} exceeds {self.max_queue_depth}",
                metadata={"current_depth": str(system.queueDepth), "threshold": str(self.max_queue_depth)},
            ))
        for task_type, metrics in tasks.items():
            if metrics.totalCount and metrics.successRate < self.min_success_rate:
                alerts.append(MetricsAlert(
                    level="warning",
                    type="task_error_rate",
                    message=f"Task {task_type} success rate {metrics.successRate:.2%} is below {self.min_success_rate:.2%}",
                    metadata={"task_type": task_type, "current_rate": f"{metrics.successRate:.2f}"},
                ))
        return alerts
