"""Domain error taxonomy and FastAPI exception handlers.

Each error carries a stable machine-readable ``kind`` and the HTTP status
the API layer should respond with.  Services raise these; routers let them
propagate so the handlers registered in ``main.py`` render a uniform
``{"error": {"kind", "message", "details"}}`` envelope.
"""

import logging
from typing import Any, TypeVar

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class PostcraftError(Exception):
    """Base class for all workflow errors."""

    kind: str = "error"
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "message": self.message,
            "details": self.details,
        }


class ValidationError(PostcraftError):
    """Malformed or missing input; ``fields`` names every failing field."""

    kind = "validation_error"
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY

    def __init__(
        self,
        message: str,
        fields: list[str] | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.fields = list(fields or [])
        merged = dict(details or {})
        merged.setdefault("fields", self.fields)
        super().__init__(message, merged)

    @classmethod
    def from_pydantic(cls, exc: PydanticValidationError) -> "ValidationError":
        """Build a domain ValidationError from a pydantic one."""
        fields: list[str] = []
        for err in exc.errors():
            name = ".".join(str(part) for part in err.get("loc", ())) or "__root__"
            if name not in fields:
                fields.append(name)
        return cls(
            f"Invalid input: {', '.join(fields)}",
            fields=fields,
            details={"errors": _jsonable_errors(exc.errors())},
        )


class AuthorizationError(PostcraftError):
    """Missing identity or ownership mismatch. Never reveals existence."""

    kind = "authorization_error"
    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(PostcraftError):
    kind = "not_found"
    status_code = status.HTTP_404_NOT_FOUND


class InvalidStateError(PostcraftError):
    kind = "invalid_state"
    status_code = status.HTTP_409_CONFLICT


class OperationFailedError(PostcraftError):
    """A multi-step mutation could not be applied atomically."""

    kind = "operation_failed"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class StorageError(PostcraftError):
    """The backing store is unavailable. Fatal for the current request."""

    kind = "storage_error"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


class GenerationError(PostcraftError):
    """The external model call failed or timed out."""

    kind = "generation_failed"
    status_code = status.HTTP_502_BAD_GATEWAY


def require_user(user_id: str | None) -> str:
    """Return *user_id* or raise AuthorizationError when it is absent."""
    if not user_id or not str(user_id).strip():
        raise AuthorizationError(
            "Authentication required", details={"unauthenticated": True}
        )
    return str(user_id)


def parse_input(model_cls: type[ModelT], data: Any) -> ModelT:
    """Coerce *data* into *model_cls*, raising the domain ValidationError.

    Already-built instances are re-validated so that services never trust a
    model constructed with ``model_construct``.
    """
    if isinstance(data, BaseModel):
        data = data.model_dump(exclude_unset=True)
    if data is None:
        data = {}
    try:
        return model_cls.model_validate(data)
    except PydanticValidationError as exc:
        raise ValidationError.from_pydantic(exc) from exc


def _jsonable_errors(errors: list[dict[str, Any]]) -> list[dict[str, Any]]:
    # pydantic puts raw exception objects under "ctx"; keep only plain data
    cleaned = []
    for err in errors:
        cleaned.append(
            {
                "loc": [str(part) for part in err.get("loc", ())],
                "msg": err.get("msg", ""),
                "type": err.get("type", ""),
            }
        )
    return cleaned


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------


async def postcraft_exception_handler(
    request: Request, exc: PostcraftError
) -> JSONResponse:
    if isinstance(exc, StorageError):
        logger.critical("Storage failure on %s: %s", request.url.path, exc.message)
    elif exc.status_code >= 500:
        logger.error("%s on %s: %s", exc.kind, request.url.path, exc.message)
    status_code = exc.status_code
    if isinstance(exc, AuthorizationError) and exc.details.get("unauthenticated"):
        status_code = status.HTTP_401_UNAUTHORIZED
    return JSONResponse(status_code=status_code, content={"error": exc.to_dict()})


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    fields = []
    for err in exc.errors():
        # drop the leading "body"/"query"/"path" segment
        loc = [str(part) for part in err.get("loc", ())][1:] or ["__root__"]
        name = ".".join(loc)
        if name not in fields:
            fields.append(name)
    error = ValidationError(
        f"Invalid input: {', '.join(fields)}",
        fields=fields,
        details={"errors": _jsonable_errors(exc.errors())},
    )
    return JSONResponse(
        status_code=error.status_code, content={"error": error.to_dict()}
    )


async def storage_exception_handler(
    request: Request, exc: SQLAlchemyError
) -> JSONResponse:
    """Render a store failure that escaped the services as ``storage_error``.

    The driver message stays in the server log; clients get a generic one.
    """
    logger.error("Unhandled store error on %s", request.url.path, exc_info=exc)
    return await postcraft_exception_handler(
        request, StorageError("The content store is unavailable")
    )
