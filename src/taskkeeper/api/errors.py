"""Exception handlers — the only place an error kind becomes a status code.

Learn: Below this module nobody knows about HTTP. Use-cases raise
AppErrors carrying an ErrorKind; these handlers look at the kind and
answer with `{"message": ...}`. Internal errors keep their message in
local environments and are reduced to "Internal Server Error" elsewhere.

Request-shape failures (pydantic) become 400 with a per-field list,
and Starlette's own HTTPExceptions (unknown route, wrong method) get the
same JSON shape.
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from taskkeeper.errors import AppError, ErrorKind, InvalidSession

logger = structlog.get_logger()

STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.AUTHENTICATION: 401,
    ErrorKind.AUTHORIZATION: 403,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 409,
    ErrorKind.INTERNAL: 500,
}

INTERNAL_MESSAGE = "Internal Server Error"


def _settings(request: Request):
    return request.app.state.container.settings


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    settings = _settings(request)
    status_code = STATUS_BY_KIND.get(exc.kind, 500)
    message = exc.message

    if status_code >= 500:
        logger.error(
            "request.failed",
            path=request.url.path,
            method=request.method,
            error=exc.message,
            **exc.context,
        )
        if not settings.is_local:
            message = INTERNAL_MESSAGE
    else:
        logger.info(
            "request.rejected",
            path=request.url.path,
            method=request.method,
            status_code=status_code,
            kind=exc.kind.value,
        )

    response = JSONResponse(status_code=status_code, content={"message": message})
    if isinstance(exc, InvalidSession):
        response.delete_cookie(settings.session_cookie_name, path="/")
    return response


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {
            "field": ".".join(str(part) for part in err.get("loc", ())),
            "message": err.get("msg", "Invalid value."),
        }
        for err in exc.errors()
    ]
    logger.warning("request.invalid", path=request.url.path, errors=errors)
    return JSONResponse(
        status_code=400,
        content={"message": "Input validation failed", "errors": errors},
    )


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    settings = _settings(request)
    logger.error(
        "request.unhandled_error",
        path=request.url.path,
        method=request.method,
        error=str(exc),
        exc_info=exc,
    )
    message = str(exc) if settings.is_local else INTERNAL_MESSAGE
    return JSONResponse(status_code=500, content={"message": message or INTERNAL_MESSAGE})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
