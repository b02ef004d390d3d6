from __future__ import annotations

from http import HTTPStatus
from typing import TYPE_CHECKING

from pydantic import BaseModel

if TYPE_CHECKING:
    from pydantic import ValidationError as PydanticValidationError


class Violation(BaseModel):
    """A single failed field or business rule."""

    field: str | None = None
    rule: str
    message: str


class ErrorResponse(BaseModel):
    """Standard error payload for request handlers that surface library errors."""

    error: str
    detail: str | None = None
    violations: list[Violation] = []
    status_code: int


class AppError(Exception):
    """Base library exception."""

    def __init__(self, message: str, status_code: int = HTTPStatus.INTERNAL_SERVER_ERROR) -> None:
        self.message = message
        self.status_code = int(status_code)
        super().__init__(self.message)

    def to_error_response(self) -> ErrorResponse:
        return ErrorResponse(
            error=type(self).__name__,
            detail=self.message,
            violations=list(getattr(self, "violations", [])),
            status_code=self.status_code,
        )


class ValidationError(AppError):
    """Malformed input: wrong shape, out-of-range value or unknown enum member."""

    def __init__(
        self,
        message: str,
        violations: list[Violation] | None = None,
        status_code: int = HTTPStatus.UNPROCESSABLE_ENTITY,
    ) -> None:
        self.violations = violations or []
        super().__init__(message, status_code=status_code)

    @classmethod
    def from_pydantic(cls, model_name: str, exc: PydanticValidationError) -> ValidationError:
        """Convert a pydantic error into field-level violations."""
        violations = [
            Violation(
                field=".".join(str(part) for part in err["loc"]) or None,
                rule=err["type"],
                message=err["msg"],
            )
            for err in exc.errors()
        ]
        message = f"Invalid {model_name}: {violations[0].message}" if violations else f"Invalid {model_name}"
        return cls(message, violations)


class BusinessRuleError(AppError):
    """Well-formed input that violates a business rule."""

    def __init__(
        self,
        message: str,
        violations: list[Violation] | None = None,
        status_code: int = HTTPStatus.BAD_REQUEST,
    ) -> None:
        self.violations = violations or [Violation(rule="business_rule", message=message)]
        super().__init__(message, status_code=status_code)

    @classmethod
    def from_violations(cls, violations: list[Violation]) -> BusinessRuleError:
        return cls("; ".join(v.message for v in violations), violations)


class InsufficientBalanceError(BusinessRuleError):
    """Requested usage exceeds the current leave balance."""

    def __init__(self, requested: object, available: object) -> None:
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient leave balance: requested {requested}, available {available}",
            [Violation(field="amount", rule="insufficient_balance", message="Insufficient leave balance")],
            status_code=HTTPStatus.CONFLICT,
        )


class NotFoundError(AppError):
    """A referenced record does not exist in the collaborator store."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=HTTPStatus.NOT_FOUND)


class StaleSnapshotError(AppError):
    """A write was based on a snapshot that another writer already replaced."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=HTTPStatus.CONFLICT)
