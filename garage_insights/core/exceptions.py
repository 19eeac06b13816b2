from fastapi import Request
from fastapi.responses import JSONResponse
from fastapi.exceptions import HTTPException

from garage_insights.schemas.common import error_body
from garage_insights.core.error_codes import ErrorCode

from garage_insights.core.domain_exceptions import (
    AgentAlreadyRunningError,
    DomainException,
    RecordNotFoundError,
)


def _status_for(exc: DomainException) -> int:
    if isinstance(exc, RecordNotFoundError):
        return 404
    if isinstance(exc, AgentAlreadyRunningError):
        return 409
    return 400


def _request_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None)


async def http_exception_handler(request: Request, exc: HTTPException):
    code = ErrorCode.NOT_FOUND if exc.status_code == 404 else ErrorCode.VALIDATION_ERROR
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(code, str(exc.detail), _request_id(request)),
    )


async def domain_exception_handler(request: Request, exc: DomainException):
    return JSONResponse(
        status_code=_status_for(exc),
        content=error_body(exc.code, exc.message, _request_id(request)),
    )
