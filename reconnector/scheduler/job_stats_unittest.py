from reconnector.scheduler.job_stats import JobStats


def test_defaults_are_zero():
    stats = JobStats()
    assert (stats.fired, stats.completed, stats.failed, stats.skipped) == (0, 0, 0, 0)
    assert stats.in_flight == 0


def test_in_flight_counts_unfinished_executions():
    stats = JobStats(fired=5, completed=3, failed=1, skipped=7)
    assert stats.in_flight == 1
