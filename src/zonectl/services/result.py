"""Return type shared by every zonectl service operation.

Services never raise to the CLI: a :class:`ZoneError` raised below the
facade becomes ``ServiceResult(ok=False, error=ServiceError(...))`` and the
CLI maps ``ok`` to the exit code. Both models are frozen so telemetry and
plugins cannot alter a result after the fact.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from zonectl.domain.errors import ZoneError


class ServiceError(BaseModel):
    model_config = {"frozen": True}

    code: str
    message: str
    detail: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_exception(cls, exc: ZoneError) -> ServiceError:
        return cls(code=exc.code, message=exc.message, detail=exc.detail)


class ServiceResult(BaseModel):
    """Outcome of one service call.

    Attributes:
        ok: Whether the operation succeeded.
        op: Operation name, e.g. ``"create_zone"`` or ``"confirm_delete"``.
        data: Operation payload. A failure may still carry data, such as a
            zone that was committed although its protection only partly
            applied.
        warnings: Non-fatal problems: map markers, label refresh, plugin hooks.
        error: Set exactly when ``ok`` is False.
        meta: Span tree under ``"telemetry"`` when running verbose.
    """

    model_config = {"frozen": True}

    ok: bool
    op: str
    data: dict[str, Any] = Field(default_factory=dict)
    warnings: list[str] = Field(default_factory=list)
    error: ServiceError | None = None
    meta: dict[str, Any] | None = None

    @property
    def error_code(self) -> str | None:
        return self.error.code if self.error is not None else None
