"""Tests for ReconnectJobConfig."""

import dataclasses

import pytest

from reconnector.config.reconnect_job_config import (
    DEFAULT_JOB_ID,
    ReconnectJobConfig,
)


def test_defaults():
    config = ReconnectJobConfig()
    assert config.job_id == DEFAULT_JOB_ID
    assert config.interval_seconds == 60.0
    assert config.initial_delay_seconds == 0.0
    assert config.max_workers == 2


def test_is_frozen():
    config = ReconnectJobConfig()
    with pytest.raises(dataclasses.FrozenInstanceError):
        config.interval_seconds = 5.0  # type: ignore[misc]


@pytest.mark.parametrize("interval", [0, -1.5])
def test_rejects_non_positive_interval(interval):
    with pytest.raises(ValueError, match="interval_seconds"):
        ReconnectJobConfig(interval_seconds=interval)


def test_rejects_negative_initial_delay():
    with pytest.raises(ValueError, match="initial_delay_seconds"):
        ReconnectJobConfig(initial_delay_seconds=-0.1)


def test_rejects_empty_job_id():
    with pytest.raises(ValueError, match="job_id"):
        ReconnectJobConfig(job_id="")


def test_rejects_zero_workers():
    with pytest.raises(ValueError, match="max_workers"):
        ReconnectJobConfig(max_workers=0)
