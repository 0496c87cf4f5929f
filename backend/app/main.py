import logging
import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from routes import history, prompts, uploads
from services.database import init_db
from services.errors import PromptMakerError

logger = logging.getLogger(__name__)

CORS_ALLOW_METHODS = ["GET", "POST", "PUT", "DELETE", "OPTIONS"]
CORS_ALLOW_HEADERS = ["content-type", "authorization"]
CORS_MAX_AGE_SECONDS = 86400


def get_cors_origins() -> list[str]:
    raw = os.environ.get("CORS_ALLOW_ORIGINS", "").strip()
    return [origin.strip() for origin in raw.split(",") if origin.strip()] or ["*"]


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    init_db()
    yield


def _error(status_code: int, message: str, detail: object = None) -> JSONResponse:
    content: dict[str, object] = {"ok": False, "error": message}
    if detail is not None:
        content["detail"] = detail
    return JSONResponse(status_code=status_code, content=content)


app = FastAPI(title="Prompt Maker API", version="0.1.0", lifespan=lifespan)


@app.exception_handler(PromptMakerError)
async def prompt_maker_error_handler(_request: Request, exc: PromptMakerError) -> JSONResponse:
    return _error(exc.status_code, exc.message, exc.detail)


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = f"Invalid request: {location} {first.get('msg', '')}".strip() if location else "Invalid request"
    return _error(400, message)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return _error(exc.status_code, str(exc.detail))


@app.middleware("http")
async def internal_error_envelope(request: Request, call_next):
    # Anything not handled above becomes a 500 with the exception message.
    try:
        return await call_next(request)
    except Exception as exc:  # noqa: BLE001
        logger.error("[app] Unhandled error on %s %s: %s", request.method, request.url.path, exc, exc_info=True)
        return _error(500, str(exc) or type(exc).__name__)


# Outermost middleware: error envelopes need CORS headers too.
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_cors_origins(),
    allow_methods=CORS_ALLOW_METHODS,
    allow_headers=CORS_ALLOW_HEADERS,
    max_age=CORS_MAX_AGE_SECONDS,
)

app.include_router(uploads.router, prefix="/api")
app.include_router(prompts.router, prefix="/api")
app.include_router(history.router, prefix="/api")


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.options("/{path:path}", include_in_schema=False)
def options_fallback(path: str) -> Response:
    # Browser preflights are answered by CORSMiddleware; this covers bare OPTIONS.
    return Response(status_code=204)
