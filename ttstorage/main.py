"""Entry point for the storage service."""

import json
import time
import uuid
from datetime import datetime, timezone
from http import HTTPStatus
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from common.logging_config import setup_logging
from ttstorage import config
from ttstorage.database import init_database
from ttstorage.dependencies import get_object_storage
from ttstorage.exceptions import ErrorCodes, ErrorKind, ServiceError
from ttstorage.routes import file_router, tag_router
from ttstorage.schemas import ErrorResponse

logger = setup_logging('ttstorage')

app = FastAPI(
    title="TT Storage",
    description="File storage service with owner, visibility and tag metadata",
    version="1.0.0"
)


def error_body(
    request: Request,
    kind: ErrorKind,
    code: str,
    message: str,
    status_code: Optional[int] = None,
    error: Optional[str] = None,
    headers: Optional[dict] = None,
) -> JSONResponse:
    """
    Build the uniform error response. ``status_code`` and ``error`` default
    to the values carried by ``kind``.
    """
    status_code = status_code or kind.status_code
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(
            timestamp=datetime.now(timezone.utc).isoformat(),
            code=code,
            status=status_code,
            path=request.url.path,
            error=error or kind.display_name,
            message=message,
        ).model_dump(),
        headers=headers,
    )


def _validation_code(errors: list) -> str:
    types = {error.get("type") for error in errors}
    if "json_invalid" in types:
        return ErrorCodes.INVALID_JSON
    for error in errors:
        if error.get("type") == "missing":
            if tuple(error.get("loc", ()))[-1:] == ("file",):
                return ErrorCodes.FILE_ABSENT
            return ErrorCodes.REQUEST_PARAM_ABSENT
    return ErrorCodes.VALIDATION_FAILED


def _validation_message(errors: list) -> str:
    fields = {}
    for error in errors:
        loc = [str(part) for part in error.get("loc", ())]
        field_name = ".".join(loc[1:]) if len(loc) > 1 else ".".join(loc)
        fields[field_name or "request"] = error.get("msg", "invalid value")
    return json.dumps(fields)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """
    Middleware to log all HTTP requests and responses.
    """
    request_id = str(uuid.uuid4())
    request.state.request_id = request_id

    start_time = time.time()

    logger.info(
        f"Request started: {request.method} {request.url.path} [request_id={request_id}]"
    )

    response = await call_next(request)

    duration = time.time() - start_time

    logger.info(
        f"Request completed: {request.method} {request.url.path} "
        f"status={response.status_code} duration={duration:.3f}s [request_id={request_id}]"
    )

    response.headers["X-Request-ID"] = request_id

    return response


@app.on_event("startup")
async def startup_event():
    """
    Initialize the metadata store and the object store bucket.
    """
    logger.info("Storage service starting up...")

    init_database()
    logger.info("Database initialized")

    try:
        get_object_storage().ensure_bucket()
    except ServiceError as e:
        logger.error(f"Object store bucket initialization failed: {e.message}")


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    request_id = getattr(request.state, 'request_id', 'unknown')
    if exc.status_code >= 500:
        logger.error(
            f"{exc.kind.display_name}: {exc.message} [request_id={request_id}] path={request.url.path}",
            exc_info=exc
        )
    else:
        logger.warning(
            f"{exc.kind.display_name}: {exc.message} [request_id={request_id}] path={request.url.path}"
        )
    return error_body(request, exc.kind, exc.code, exc.message)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    request_id = getattr(request.state, 'request_id', 'unknown')
    if exc.status_code < 500:
        kind, code = ErrorKind.VALIDATION, ErrorCodes.VALIDATION_FAILED
    else:
        kind, code = ErrorKind.INTERNAL, ErrorCodes.INTERNAL_SERVER
    logger.warning(
        f"HTTP {exc.status_code}: {exc.detail} [request_id={request_id}] path={request.url.path}"
    )
    return error_body(
        request,
        kind,
        code,
        str(exc.detail),
        status_code=exc.status_code,
        error=HTTPStatus(exc.status_code).phrase,
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    request_id = getattr(request.state, 'request_id', 'unknown')
    errors = exc.errors()
    message = _validation_message(errors)
    logger.warning(
        f"Validation failed: {message} [request_id={request_id}] path={request.url.path}"
    )
    return error_body(request, ErrorKind.VALIDATION, _validation_code(errors), message)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    request_id = getattr(request.state, 'request_id', 'unknown')
    logger.error(
        f"Unhandled exception: {exc} [request_id={request_id}] path={request.url.path}",
        exc_info=exc
    )
    return error_body(request, ErrorKind.INTERNAL, ErrorCodes.INTERNAL_SERVER, "Internal server error")


app.include_router(file_router)
app.include_router(tag_router)


@app.get("/")
async def root():
    """
    Root endpoint for health check.
    """
    return {"message": "TT Storage API", "status": "running"}


@app.get("/health")
async def health_check():
    """
    Liveness probe. Returns 200 if the process is serving requests.
    """
    return {"status": "healthy", "service": "ttstorage"}


@app.get("/ready")
def ready_check():
    """
    Readiness check endpoint.
    Verifies metadata store and object store connectivity.
    """
    from ttstorage.database import ping

    try:
        ping()
        db_status = "ok"
    except Exception as e:
        db_status = f"error: {str(e)}"

    try:
        get_object_storage().ping()
        storage_status = "ok"
    except Exception as e:
        storage_status = f"error: {str(e)}"

    ready = db_status == "ok" and storage_status == "ok"
    status_code = status.HTTP_200_OK if ready else status.HTTP_503_SERVICE_UNAVAILABLE

    return JSONResponse(
        status_code=status_code,
        content={
            "ready": ready,
            "database": db_status,
            "storage": storage_status
        }
    )


def main() -> None:
    """
    Start the FastAPI server with uvicorn.
    """
    uvicorn.run(
        "ttstorage.main:app",
        host=config.SERVICE_HOST,
        port=config.SERVICE_PORT,
        timeout_keep_alive=config.KEEP_ALIVE_TIMEOUT_SECONDS,
    )


if __name__ == "__main__":
    main()
