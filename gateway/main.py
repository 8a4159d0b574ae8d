"""Entry point for the gateway service."""

import time
import uuid

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from common.logging_config import setup_logging
from gateway.channel_pool import ChannelPool
from gateway.config import (
    BOT_TOKEN,
    CHANNEL_COOLDOWN_SECONDS,
    CHANNEL_MAX_WAIT_SECONDS,
    DISCORD_API_BASE,
    GATEWAY_HOST,
    GATEWAY_PORT,
    WEBHOOKS_FILE,
)
from gateway.database import init_database
from gateway.exceptions import (
    CatalogError,
    ChannelUnavailableError,
    ConfigurationError,
    FetchError,
    InputError,
    NameConflictError,
    NitroException,
    PartNotFoundError,
    RetrieverError,
    UploadError,
)
from gateway.reassembler import Reassembler
from gateway.retriever import DiscordRetriever
from gateway.routes.multipart_routes import router as multipart_router
from gateway.service_locator import set_multipart_service
from gateway.services.multipart_service import MultipartService
from gateway.uploader import ChannelUploader

logger = setup_logging('gateway')

app = FastAPI(
    title="Nitro Files Gateway",
    description="Splits files into parts stored on rate-limited webhook channels and reassembles them",
    version="1.0.0"
)

uploader = None
retriever = None
reassembler = None


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
    Initialize the catalog and the upload/fetch pipeline on application startup.
    """
    global uploader, retriever, reassembler

    logger.info("Gateway service starting up...")

    init_database()
    logger.info("Database initialized")

    try:
        pool = ChannelPool.from_file(
            WEBHOOKS_FILE,
            cooldown_seconds=CHANNEL_COOLDOWN_SECONDS,
            max_wait_seconds=CHANNEL_MAX_WAIT_SECONDS,
        )
        uploader = ChannelUploader(pool)
    except ConfigurationError as e:
        logger.warning(f"Channel uploads disabled: {e}")
        uploader = None

    retriever = DiscordRetriever(BOT_TOKEN, api_base=DISCORD_API_BASE)
    reassembler = Reassembler(retriever)

    set_multipart_service(MultipartService(uploader=uploader, reassembler=reassembler))
    logger.info("Multipart service ready")


@app.on_event("shutdown")
async def shutdown_event():
    """
    Close outbound HTTP clients on application shutdown.
    """
    logger.info("Gateway service shutting down...")

    for component in (uploader, retriever, reassembler):
        if component is not None:
            await component.close()

    set_multipart_service(None)


def _error_response(request: Request, exc: Exception, status_code: int, code: str) -> JSONResponse:
    request_id = getattr(request.state, 'request_id', 'unknown')
    log = logger.error if status_code >= 500 else logger.warning
    log(f"{type(exc).__name__}: {exc} [request_id={request_id}] path={request.url.path}")
    return JSONResponse(
        status_code=status_code,
        content={"detail": str(exc), "code": code}
    )


@app.exception_handler(InputError)
async def input_error_handler(request: Request, exc: InputError):
    return _error_response(request, exc, status.HTTP_400_BAD_REQUEST, "INVALID_INPUT")


@app.exception_handler(NameConflictError)
async def name_conflict_handler(request: Request, exc: NameConflictError):
    return _error_response(request, exc, status.HTTP_409_CONFLICT, "NAME_CONFLICT")


@app.exception_handler(PartNotFoundError)
async def part_not_found_handler(request: Request, exc: PartNotFoundError):
    return _error_response(request, exc, status.HTTP_404_NOT_FOUND, "PART_NOT_FOUND")


@app.exception_handler(ChannelUnavailableError)
async def channel_unavailable_handler(request: Request, exc: ChannelUnavailableError):
    return _error_response(request, exc, status.HTTP_503_SERVICE_UNAVAILABLE, "CHANNEL_UNAVAILABLE")


@app.exception_handler(UploadError)
async def upload_error_handler(request: Request, exc: UploadError):
    return _error_response(request, exc, status.HTTP_502_BAD_GATEWAY, "UPLOAD_FAILED")


@app.exception_handler(FetchError)
async def fetch_error_handler(request: Request, exc: FetchError):
    return _error_response(request, exc, status.HTTP_502_BAD_GATEWAY, "FETCH_FAILED")


@app.exception_handler(RetrieverError)
async def retriever_error_handler(request: Request, exc: RetrieverError):
    return _error_response(request, exc, status.HTTP_502_BAD_GATEWAY, "RETRIEVER_FAILED")


@app.exception_handler(CatalogError)
async def catalog_error_handler(request: Request, exc: CatalogError):
    return _error_response(request, exc, status.HTTP_500_INTERNAL_SERVER_ERROR, "CATALOG_ERROR")


@app.exception_handler(NitroException)
async def nitro_exception_handler(request: Request, exc: NitroException):
    return _error_response(request, exc, status.HTTP_500_INTERNAL_SERVER_ERROR, "INTERNAL_ERROR")


app.include_router(multipart_router)


@app.get("/")
async def root():
    """
    Root endpoint for health check.
    """
    return {"message": "Nitro Files Gateway API", "status": "running"}


@app.get("/health")
async def health_check():
    """
    Health check endpoint for Docker healthcheck.
    """
    return {"status": "healthy", "service": "gateway"}


def main() -> None:
    """
    Start the FastAPI server with uvicorn.
    """
    uvicorn.run(
        "gateway.main:app",
        host=GATEWAY_HOST,
        port=GATEWAY_PORT,
    )


if __name__ == "__main__":
    main()
