"""
Stratikey - Logging Infrastructure

This module provides structured logging with support for:
- JSON formatted logs for production
- Console formatted logs for development
- Context binding for request tracing
- Security event logging for authorization decisions
"""

from __future__ import annotations

import logging
import sys
from contextvars import ContextVar, Token
from typing import Any, Dict, List, Optional

import structlog
from structlog.types import Processor

from stratikey.core.config import get_settings

# Context variables for request tracing
request_id_context: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
organization_id_context: ContextVar[Optional[str]] = ContextVar("organization_id", default=None)
user_id_context: ContextVar[Optional[str]] = ContextVar("user_id", default=None)


def add_context_variables(
    logger: logging.Logger,
    method_name: str,
    event_dict: Dict[str, Any]
) -> Dict[str, Any]:
    """
    Add context variables to log entries.

    This processor adds request_id, organization_id, and user_id from
    context variables to every log entry.
    """
    request_id = request_id_context.get()
    if request_id:
        event_dict.setdefault("request_id", request_id)

    organization_id = organization_id_context.get()
    if organization_id:
        event_dict.setdefault("organization_id", organization_id)

    user_id = user_id_context.get()
    if user_id:
        event_dict.setdefault("user_id", user_id)

    return event_dict


def get_log_level(settings: Any) -> int:
    """Convert string log level to logging constant."""
    level_map = {
        "DEBUG": logging.DEBUG,
        "INFO": logging.INFO,
        "WARNING": logging.WARNING,
        "ERROR": logging.ERROR,
        "CRITICAL": logging.CRITICAL,
    }
    return level_map.get(settings.LOG_LEVEL.upper(), logging.INFO)


def get_processors(settings: Any) -> list[Processor]:
    """Get structlog processors based on settings."""
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        add_context_variables,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if settings.LOG_FORMAT == "json" or settings.is_production:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    return processors


def configure_logging() -> None:
    """
    Configure structured logging for the application.

    This should be called once at application startup.
    """
    settings = get_settings()

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=get_log_level(settings),
    )

    structlog.configure(
        processors=get_processors(settings),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: Optional[str] = None) -> structlog.stdlib.BoundLogger:
    """
    Get a configured logger instance.

    Args:
        name: Logger name. If None, uses the calling module's name.

    Returns:
        A structlog BoundLogger instance.

    Example:
        >>> log = get_logger(__name__)
        >>> log.info("organization_switched", organization_id="org-1")
    """
    return structlog.get_logger(name)


class LogContext:
    """
    Context manager for setting log context variables.

    Example:
        >>> with LogContext(request_id="req-123", organization_id="org-1"):
        ...     log.info("approval_started")
    """

    def __init__(
        self,
        request_id: Optional[str] = None,
        organization_id: Optional[str] = None,
        user_id: Optional[str] = None,
    ):
        self.request_id = request_id
        self.organization_id = organization_id
        self.user_id = user_id
        self._tokens: List[tuple[ContextVar, Token]] = []

    def __enter__(self) -> "LogContext":
        if self.request_id:
            self._tokens.append((request_id_context, request_id_context.set(self.request_id)))
        if self.organization_id:
            self._tokens.append(
                (organization_id_context, organization_id_context.set(self.organization_id))
            )
        if self.user_id:
            self._tokens.append((user_id_context, user_id_context.set(self.user_id)))
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        for var, token in reversed(self._tokens):
            var.reset(token)
        self._tokens.clear()


class SecurityLogger:
    """
    Specialized logger for authorization and tenant-isolation events.

    Events only carry identifiers the caller already knows (their own
    user id, the organization they asked for); nothing read from other
    tenants is ever logged here.
    """

    def __init__(self) -> None:
        self.log = get_logger("stratikey.security")

    def log_unauthenticated(self, reason: str, path: Optional[str] = None) -> None:
        self.log.warning("unauthenticated_request", reason=reason, path=path)

    def log_permission_denied(
        self,
        user_id: str,
        role: Optional[str],
        module: str,
        action: str,
    ) -> None:
        self.log.warning(
            "permission_denied",
            user_id=user_id,
            role=role,
            module=module,
            action=action,
        )

    def log_not_a_member(self, user_id: str, requested_organization: str) -> None:
        self.log.warning(
            "organization_access_rejected",
            user_id=user_id,
            requested_organization=requested_organization,
        )

    def log_tenant_isolation_violation(
        self,
        user_id: str,
        active_organization: str,
        resource: str,
    ) -> None:
        self.log.warning(
            "tenant_isolation_violation",
            user_id=user_id,
            active_organization=active_organization,
            resource=resource,
        )

    def log_rate_limit_exceeded(self, key: str, endpoint: str, retry_after: int) -> None:
        self.log.warning(
            "rate_limit_exceeded",
            key=key,
            endpoint=endpoint,
            retry_after=retry_after,
        )

    def log_approval_conflict(
        self,
        user_id: str,
        entity_type: str,
        entity_id: str,
        expected_status: str,
        expected_version: int,
    ) -> None:
        self.log.warning(
            "approval_conflict",
            user_id=user_id,
            entity_type=entity_type,
            entity_id=entity_id,
            expected_status=expected_status,
            expected_version=expected_version,
        )


security_logger = SecurityLogger()
