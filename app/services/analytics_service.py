"""
Mithaq — Analytics event sink.

Analytics is fire-and-forget: ``track`` never raises into the caller.  The
default sink writes events to the structured log, where the log pipeline
forwards them to whatever analytics backend the deployment uses.
"""

from __future__ import annotations

from typing import Protocol

import structlog

logger = structlog.get_logger("mithaq.analytics")


class Analytics(Protocol):
    def track(self, event_name: str, parameters: dict[str, str]) -> None: ...


class LogAnalytics:
    """Emit each event as an ``analytics_event`` log record."""

    def track(self, event_name: str, parameters: dict[str, str]) -> None:
        logger.info("analytics_event", event_name=event_name, parameters=parameters)


class NullAnalytics:
    def track(self, event_name: str, parameters: dict[str, str]) -> None:
        return None


def safe_track(
    analytics: Analytics, event_name: str, parameters: dict[str, str] | None = None
) -> None:
    """Forward to *analytics*, logging and discarding any failure."""
    try:
        analytics.track(event_name, parameters or {})
    except Exception:
        logger.warning("analytics_track_failed", event_name=event_name, exc_info=True)
