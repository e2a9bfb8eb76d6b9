"""
Audit Logger

Every routing attempt, salvage, heuristic override and save goes through
here. Events are rendered as JSON lines via structlog and, when a sink is
configured, appended to it so one capture can be replayed by its
correlation id.

A failing sink is reported locally and never reaches the router.
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from onemind.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from onemind.services.storage import AuditStorageInterface


_LEVEL_METHODS = {
    AuditSeverity.DEBUG: "debug",
    AuditSeverity.INFO: "info",
    AuditSeverity.WARNING: "warning",
    AuditSeverity.ERROR: "error",
}


def configure_logging(json_output: bool = True) -> None:
    """
    Install the structlog pipeline used by the audit logger.

    Called once at import; call again with json_output=False for
    human-readable console output during development.
    """
    renderer = (
        structlog.processors.JSONRenderer(ensure_ascii=False)
        if json_output
        else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


configure_logging()


class AuditLogger:
    """Writes audit events to the local log and an optional sink."""

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
        logger_name: str = "onemind.audit",
    ):
        self._storage = storage
        self._logger = structlog.get_logger(logger_name)

    @property
    def has_sink(self) -> bool:
        return self._storage is not None

    async def log(self, event: AuditEvent) -> bool:
        """
        Record one event.

        Returns False only when the sink rejected the write.
        """
        emit = getattr(self._logger, _LEVEL_METHODS[event.severity])
        emit("audit_event", **event.to_log_dict())

        if self._storage is None:
            return True

        try:
            return await self._storage.append_event(event)
        except Exception as e:
            self._logger.error(
                "audit_storage_failed",
                error=str(e),
                event_id=str(event.event_id),
                event_type=event.event_type.value,
            )
            return False

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(
            AuditEventBuilder.system_error(
                error_type=error_type,
                error_message=error_message,
                details=details,
                correlation_id=correlation_id,
            )
        )

    async def trace(self, correlation_id: UUID) -> list[AuditEvent]:
        """All sink events of one call, oldest first. Empty without a sink."""
        if self._storage is None:
            return []
        return await self._storage.get_events_by_correlation_id(correlation_id)


def create_correlation_id() -> UUID:
    """New id shared by every event of one capture or classification."""
    return uuid4()
