"""Configuration objects for reconnector."""

from reconnector.config.reconnect_job_config import ReconnectJobConfig

__all__ = ["ReconnectJobConfig"]
