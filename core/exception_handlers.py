import logging

from fastapi import FastAPI, Request, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .auth import SyncAuthError
from .errors import ConflictError, DatabaseUnavailableError, FormValidationError, NotFoundError
from .response import error as resp_error

logger = logging.getLogger(__name__)

ROUTE_NOT_FOUND = {"error": "Route not found"}


def register_exception_handlers(app: FastAPI):
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        # Router-level misses (unknown path or method) are raised as plain Starlette
        # exceptions; handler-raised ones are FastAPI HTTPException.
        if not isinstance(exc, HTTPException) and exc.status_code in (404, 405):
            return JSONResponse(status_code=404, content=ROUTE_NOT_FOUND)
        return JSONResponse(
            status_code=exc.status_code,
            content=resp_error(code=str(exc.status_code), message=str(exc.detail)),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        fields = {}
        for err in exc.errors():
            loc = [str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path")]
            fields[".".join(loc) or "request"] = err.get("msg", "invalid")
        return JSONResponse(
            status_code=400,
            content=resp_error(code="validation_error", message="Invalid request", fields=fields),
        )

    @app.exception_handler(FormValidationError)
    async def form_validation_handler(request: Request, exc: FormValidationError):
        return JSONResponse(
            status_code=400,
            content=resp_error(code="validation_error", message="Validation failed", fields=exc.errors),
        )

    @app.exception_handler(SyncAuthError)
    async def sync_auth_handler(request: Request, exc: SyncAuthError):
        # The user-sync endpoint keeps the flat body its callers parse
        return JSONResponse(status_code=401, content={"status": "error", "message": str(exc)})

    @app.exception_handler(ConflictError)
    async def conflict_handler(request: Request, exc: ConflictError):
        return JSONResponse(status_code=409, content=resp_error(code="conflict", message=str(exc)))

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError):
        return JSONResponse(status_code=404, content=resp_error(code="404", message=str(exc)))

    @app.exception_handler(DatabaseUnavailableError)
    async def db_unavailable_handler(request: Request, exc: DatabaseUnavailableError):
        return JSONResponse(
            status_code=500,
            content=resp_error(code="db_unreachable", message="Database connection failed"),
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content=resp_error(code="internal_error", message="Internal server error"))
