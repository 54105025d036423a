"""Task outcome metrics stored in (fake) Redis."""

import pytest

from lumendocs.services.metrics_service import MAX_DURATIONS, TaskMetricsRecorder


@pytest.fixture
def recorder(fake_redis):
    return TaskMetricsRecorder(fake_redis, min_success_rate=0.9, max_queue_depth=2)


def test_counts_and_durations(recorder):
    recorder.record_success("add_document_to_corpus", 1.0)
    recorder.record_success("add_document_to_corpus", 3.0)
    recorder.record_failure("add_document_to_corpus", 2.0)

    metrics = recorder.task_metrics("add_document_to_corpus")

    assert metrics.successCount == 2
    assert metrics.failureCount == 1
    assert metrics.totalCount == 3
    assert metrics.successRate == pytest.approx(2 / 3)
    assert metrics.averageDurationSeconds == pytest.approx(2.0)
    assert metrics.minDurationSeconds == 1.0
    assert metrics.maxDurationSeconds == 3.0


def test_unknown_task_type_is_empty(recorder):
    metrics = recorder.task_metrics("never_ran")

    assert metrics.totalCount == 0
    assert metrics.successRate == 0.0


def test_only_recent_durations_are_kept(recorder, fake_redis):
    for i in range(MAX_DURATIONS + 5):
        recorder.record_success("add_document_to_corpus", float(i))

    metrics = recorder.task_metrics("add_document_to_corpus")

    assert metrics.successCount == MAX_DURATIONS + 5
    assert metrics.minDurationSeconds == 5.0
    assert len(fake_redis.lists["lumendocs:metrics:task:add_document_to_corpus:durations"]) == MAX_DURATIONS


def test_redis_outage_never_raises(recorder, fake_redis):
    fake_redis.unavailable = True

    recorder.record_failure("add_document_to_corpus", 1.0)

    fake_redis.unavailable = False
    assert recorder.task_metrics("add_document_to_corpus").totalCount == 0


def test_healthy_report(recorder):
    recorder.record_success("add_document_to_corpus", 1.0)

    report = recorder.report()

    assert report.healthy
    assert report.status == "healthy"
    assert report.systemMetrics.totalProcessed == 1
    assert report.systemMetrics.overallSuccessRate == 1.0
    assert list(report.taskMetrics) == ["add_document_to_corpus"]


def test_error_rate_and_queue_backup_alerts(recorder, fake_redis):
    recorder.record_success("add_document_to_corpus", 1.0)
    recorder.record_failure("add_document_to_corpus", 1.0)
    fake_redis.lists["celery"] = ["t"] * 5

    report = recorder.report()

    assert not report.healthy
    assert report.status == "critical"
    assert report.systemMetrics.queueDepth == 5
    assert {a.type for a in report.alerts} == {"high_error_rate", "queue_backup", "task_error_rate"}
