import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Callable

from fastapi import APIRouter, Depends, FastAPI, File, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from starlette.types import Receive, Scope, Send

from pptx_pdf_service.config import ServiceConfig
from pptx_pdf_service.conversion import (
    ConversionError,
    ConversionService,
    ConverterGateway,
    LibreOfficeConverter,
    UploadTooLargeError,
)

logger = logging.getLogger(__name__)

CONVERT_PATH = "/convert/pptx-to-pdf"
# Multipart framing around the file part (boundaries, part headers)
MULTIPART_ALLOWANCE = 16 * 1024

router = APIRouter()


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _error(status_code: int, error: str, details: str | None = None) -> JSONResponse:
    body: dict[str, str] = {"error": error}
    if details is not None:
        body["details"] = details
    return JSONResponse(status_code=status_code, content=body)


class ScratchFileResponse(FileResponse):
    """File download that removes its scratch files once sending ends.

    Send failures (typically a client that went away) are logged only; the
    response is already committed at that point.
    """

    def __init__(self, path: str, *, cleanup: Callable[[], None], **kwargs) -> None:
        super().__init__(path, **kwargs)
        self._cleanup = cleanup

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        try:
            await super().__call__(scope, receive, send)
        except Exception:
            logger.exception("Download error")
        finally:
            self._cleanup()


def get_service(request: Request) -> ConversionService:
    return request.app.state.service


def get_config(request: Request) -> ServiceConfig:
    return request.app.state.config


@router.get("/")
def index(config: ServiceConfig = Depends(get_config)) -> dict[str, object]:
    """Service identity and the endpoints it offers."""
    return {
        "status": "ok",
        "message": "PowerPoint to PDF API is running",
        "version": config.version,
        "endpoints": {
            "health": "GET /",
            "convert": f"POST {CONVERT_PATH}",
        },
    }


@router.get("/health")
def health() -> dict[str, str]:
    """Liveness check with the current server time."""
    return {"status": "ok", "timestamp": _utc_now()}


@router.post(CONVERT_PATH)
async def convert_pptx_to_pdf(
    file: UploadFile | None = File(None),
    service: ConversionService = Depends(get_service),
):
    """Convert an uploaded presentation to PDF and return it as an attachment.

    Accepts multipart/form-data with a single part named "file". The upload and
    the generated PDF live in the scratch directory only for the duration of
    the request.
    """
    started = time.monotonic()
    if file is None:
        return _error(400, "No file uploaded")

    logger.info("Converting file: %s", file.filename)
    with service.scratch() as scratch:
        try:
            upload = await service.receive_upload(scratch, file.filename, file.read)
            converted = await service.convert(scratch, upload)
        except UploadTooLargeError as e:
            logger.warning("Rejected upload %s: %s", file.filename, e)
            return _error(413, "File too large", str(e))
        except ConversionError as e:
            logger.error("Conversion error: %s", e)
            return _error(500, "Conversion failed", str(e))
        except Exception as e:
            logger.exception("Server error")
            return _error(500, "Internal server error", str(e))

        duration_ms = int((time.monotonic() - started) * 1000)
        logger.info("Conversion completed in %dms", duration_ms)
        return ScratchFileResponse(
            str(converted.path),
            cleanup=scratch.release(),
            media_type="application/pdf",
            filename=converted.filename,
        )


async def _limit_request_size(request: Request, call_next):
    if request.method == "POST" and request.url.path == CONVERT_PATH:
        max_bytes = request.app.state.service.max_upload_bytes
        declared = request.headers.get("content-length")
        if declared and declared.isdigit() and int(declared) > max_bytes + MULTIPART_ALLOWANCE:
            logger.warning("Rejected request body of %s bytes", declared)
            return _error(413, "File too large", str(UploadTooLargeError(max_bytes)))
    return await call_next(request)


async def _invalid_request(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = "; ".join(str(err.get("msg", err)) for err in exc.errors())
    return _error(400, "Invalid request", details)


async def _unhandled_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error", exc_info=exc)
    return _error(500, "Internal server error", str(exc))


def create_app(config: ServiceConfig | None = None, converter: ConverterGateway | None = None) -> FastAPI:
    """Build the application around an explicit configuration.

    `converter` defaults to headless LibreOffice; tests inject their own.
    """
    config = config or ServiceConfig.from_env()
    if converter is None:
        converter = LibreOfficeConverter(config.soffice_path, timeout=config.conversion_timeout_sec)
    service = ConversionService(
        converter,
        config.scratch_dir,
        max_upload_bytes=config.max_upload_bytes,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        service.prepare()
        logger.info("Scratch directory: %s", service.scratch_dir)
        yield

    app = FastAPI(
        title="PowerPoint to PDF Service",
        version=config.version,
        description="Converts uploaded PowerPoint presentations to PDF using LibreOffice.",
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.service = service

    app.middleware("http")(_limit_request_size)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type"],
    )
    app.add_exception_handler(RequestValidationError, _invalid_request)
    app.add_exception_handler(Exception, _unhandled_error)
    app.include_router(router)
    return app


def run() -> None:
    """Run the ASGI server using uvicorn.

    Exposes the app at host:port (default 0.0.0.0:3001). Set PORT env var to override.
    """
    import uvicorn

    config = ServiceConfig.from_env()
    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    logger.info("PowerPoint to PDF API running on port %d", config.port)
    logger.info("Health check: http://localhost:%d/health", config.port)
    logger.info("Convert endpoint: POST http://localhost:%d%s", config.port, CONVERT_PATH)

    uvicorn.run(
        "pptx_pdf_service.webapi:create_app",
        factory=True,
        host=config.host,
        port=config.port,
        reload=config.reload,
    )


if __name__ == "__main__":
    run()
