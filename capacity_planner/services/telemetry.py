"""Fire-and-forget event recording for service operations."""

from __future__ import annotations

import logging
from typing import Protocol

from capacity_planner.core.config import get_settings

logger = logging.getLogger(__name__)


class Telemetry(Protocol):
    def record(self, name: str, attributes: dict[str, str] | None = None) -> None: ...


class LoggingTelemetry:
    """Writes each event as one INFO log line."""

    def record(self, name: str, attributes: dict[str, str] | None = None) -> None:
        pairs = " ".join(f"{key}={value}" for key, value in sorted((attributes or {}).items()))
        logger.info("event=%s %s", name, pairs)


class NoopTelemetry:
    def record(self, name: str, attributes: dict[str, str] | None = None) -> None:
        return None


def get_telemetry() -> Telemetry:
    if get_settings().telemetry_enabled:
        return LoggingTelemetry()
    return NoopTelemetry()
