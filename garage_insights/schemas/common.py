from typing import Any, Generic, TypeVar
from pydantic import BaseModel

T = TypeVar("T")


class APIError(BaseModel):
    code: str
    message: str
    request_id: str | None = None


class APIResponse(BaseModel, Generic[T]):
    success: bool
    data: T | None = None
    error: APIError | None = None


def error_body(code: str, message: str, request_id: str | None = None) -> dict[str, Any]:
    """Serialized failure envelope shared by every error handler."""
    return APIResponse(
        success=False,
        error=APIError(code=code, message=message, request_id=request_id),
    ).model_dump()
