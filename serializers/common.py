from typing import Generic, List, Type, TypeVar

from pydantic import BaseModel, ValidationError as PydanticValidationError

from errors import ValidationError

T = TypeVar("T")
M = TypeVar("M", bound=BaseModel)


class Envelope(BaseModel, Generic[T]):
    """``{ok, data}`` wrapper used by every read endpoint"""
    ok: bool = True
    data: T


class MessageResponse(BaseModel):
    ok: bool = True
    message: str


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    totalPages: int


class PaginatedEnvelope(BaseModel, Generic[T]):
    ok: bool = True
    data: List[T]
    pagination: Pagination


def field_errors(exc: PydanticValidationError) -> dict:
    """Group pydantic errors by their top-level field name."""
    errors: dict = {}
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path", "form")]
        field = loc[0] if loc else "__root__"
        errors.setdefault(field, []).append(err.get("msg", "Invalid value"))
    return errors


def parse_model(model: Type[M], data: dict) -> M:
    """Validate ``data`` into ``model``, raising the API's ValidationError."""
    try:
        return model.model_validate(data)
    except PydanticValidationError as exc:
        raise ValidationError("Invalid data", errors=field_errors(exc)) from exc
