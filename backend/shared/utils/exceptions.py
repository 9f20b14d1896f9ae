"""
HTTP errors raised by the routers.

Each error logs itself when raised: 4xx at WARNING, 5xx at ERROR, with
any keyword context attached as structured data. Domain services never
raise these; routers translate domain errors into them.

Usage:
    from shared.utils import exceptions as http

    raise http.NotFoundError("Order", order_id)
    raise http.ServiceUnavailableError("stock ledger", retry_after=5)
"""

from typing import Any

from fastapi import HTTPException, status

from shared.config.logging import get_logger

logger = get_logger(__name__)


class AppException(HTTPException):
    """Base HTTP error that logs its detail and context on construction."""

    def __init__(
        self,
        status_code: int,
        detail: str,
        headers: dict[str, str] | None = None,
        **log_context: Any,
    ):
        if status_code >= 500:
            logger.error(detail, status_code=status_code, **log_context)
        else:
            logger.warning(detail, status_code=status_code, **log_context)
        super().__init__(status_code=status_code, detail=detail, headers=headers)


class NotFoundError(AppException):
    """404 for an unknown order, ingredient or customer."""

    def __init__(self, entity: str, entity_id: str | None = None, **log_context: Any):
        detail = f"{entity} '{entity_id}' not found" if entity_id is not None else f"{entity} not found"
        super().__init__(
            status.HTTP_404_NOT_FOUND,
            detail,
            entity=entity,
            entity_id=entity_id,
            **log_context,
        )


class ValidationError(AppException):
    """400 for input the schemas accept but the domain rejects."""

    def __init__(self, detail: str, **log_context: Any):
        super().__init__(status.HTTP_400_BAD_REQUEST, detail, **log_context)


class InvalidTransitionError(ValidationError):
    """400 for a status change outside the order lifecycle."""

    def __init__(self, entity: str, from_status: str, to_status: str, **log_context: Any):
        super().__init__(
            f"{entity} cannot move from '{from_status}' to '{to_status}'",
            from_status=from_status,
            to_status=to_status,
            **log_context,
        )


class ConflictError(AppException):
    """409, e.g. redeeming more points than the balance holds."""

    def __init__(self, detail: str, **log_context: Any):
        super().__init__(status.HTTP_409_CONFLICT, detail, **log_context)


class ServiceUnavailableError(AppException):
    """503 when a backing store rejected the write; safe to retry later."""

    def __init__(self, service: str, retry_after: int | None = None, **log_context: Any):
        headers = {"Retry-After": str(retry_after)} if retry_after else None
        super().__init__(
            status.HTTP_503_SERVICE_UNAVAILABLE,
            f"{service} temporarily unavailable",
            headers=headers,
            service=service,
            **log_context,
        )
