"""Typed errors raised by backend adapters."""

from __future__ import annotations


class WorkOrderError(Exception):
    """Base for work order errors with a machine-readable code."""

    def __init__(self, message: str, *, code: str, work_order_id: str | None = None) -> None:
        super().__init__(message)
        self.code = code
        self.work_order_id = work_order_id

    @property
    def retryable(self) -> bool:
        return False


class NetworkError(WorkOrderError):
    """Raised when the backend could not be reached or failed transiently."""

    def __init__(
        self,
        message: str = "Backend request failed",
        *,
        work_order_id: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message, code="NETWORK_ERROR", work_order_id=work_order_id)
        if cause is not None:
            self.__cause__ = cause

    @property
    def retryable(self) -> bool:
        return True


class WorkOrderNotFoundError(WorkOrderError):
    """Raised when the target work order no longer exists."""

    def __init__(self, work_order_id: str) -> None:
        super().__init__(
            f"Work order {work_order_id} not found",
            code="NOT_FOUND",
            work_order_id=work_order_id,
        )


class WorkOrderValidationError(WorkOrderError):
    """Raised for an illegal transition or field value."""

    def __init__(
        self,
        message: str,
        *,
        work_order_id: str | None = None,
        field_name: str | None = None,
    ) -> None:
        super().__init__(message, code="VALIDATION_ERROR", work_order_id=work_order_id)
        self.field_name = field_name
