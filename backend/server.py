"""Monitabits Backend: lockdown, action log, statistics and Pomodoro API."""
from contextlib import asynccontextmanager
from pathlib import Path
import logging

from dotenv import load_dotenv
from fastapi import FastAPI, APIRouter, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.cors import CORSMiddleware

# Load env before anything else
ROOT_DIR = Path(__file__).parent
load_dotenv(ROOT_DIR / ".env")

from config.settings import get_settings
from config.validators import validate_startup_config
from core import clock
from core.logging_config import setup_logging
from core.database import init_indexes, close_db
from core.exceptions import MonitabitsError, ValidationFailed
from schemas.errors import ErrorResponse, FieldIssue
from api import actions, sessions, settings as settings_api, statistics, timer

# ---- Setup logging ----
setup_logging()
logger = logging.getLogger(__name__)


# ---- Lifespan ----
@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    logger.info("Monitabits BE starting: env=%s", settings.ENV)
    validate_startup_config(settings)
    await init_indexes()
    logger.info("Monitabits BE ready")
    yield
    await close_db()
    logger.info("Monitabits BE shutdown complete")


# ---- App ----
app = FastAPI(
    title="Monitabits API",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_credentials=True,
    allow_origins=get_settings().cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =====================================================
#  Error envelope
# =====================================================

def _error_response(
    request: Request,
    status_code: int,
    error: str,
    message: str,
    errors: list | None = None,
) -> JSONResponse:
    body = ErrorResponse(
        error=error,
        message=message,
        status_code=status_code,
        timestamp=clock.utcnow(),
        path=request.url.path,
        errors=[FieldIssue(**e) for e in errors] if errors else None,
    )
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(mode="json", by_alias=True, exclude_none=True),
    )


@app.exception_handler(MonitabitsError)
async def monitabits_error_handler(request: Request, exc: MonitabitsError):
    errors = exc.errors if isinstance(exc, ValidationFailed) else None
    return _error_response(request, exc.status_code, exc.code, exc.message, errors)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    issues = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ())[1:]]
        issues.append({"property": ".".join(loc) or "body", "message": err.get("msg", "Invalid value")})
    logger.info(
        "Request rejected",
        extra={"method": request.method, "path": request.url.path, "error_code": "VALIDATION_FAILED"},
    )
    return _error_response(request, 400, "VALIDATION_FAILED", "Validation failed", issues)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return _error_response(request, exc.status_code, f"HTTP_{exc.status_code}", str(exc.detail))


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error(
        "Unhandled error: %s",
        exc,
        exc_info=exc,
        extra={"method": request.method, "path": request.url.path, "status_code": 500},
    )
    return _error_response(request, 500, "INTERNAL_SERVER_ERROR", "Internal server error")


# =====================================================
#  REST Endpoints
# =====================================================

api_router = APIRouter(prefix="/api")


# ---- Status ----
@api_router.get("/status")
async def status():
    return {"success": True, "data": {"ok": True}}


api_router.include_router(sessions.router)
api_router.include_router(actions.router)
api_router.include_router(settings_api.router)
api_router.include_router(statistics.router)
api_router.include_router(timer.router)

# Include REST router
app.include_router(api_router)
