import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from echoprep.api.routes import health, interview, resume, users
from echoprep.core import config
from echoprep.core.logging_config import sanitize_log_data, setup_logging
from echoprep.core.responses import api_error
from echoprep.db.init_db import init_db

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(config.LOG_LEVEL)

    missing = [
        name for name in ("ACCESS_TOKEN_SECRET", "REFRESH_TOKEN_SECRET")
        if not getattr(config, name)
    ]
    if missing:
        logger.error(f"Missing required environment variables: {', '.join(missing)}")
    if not config.OPENAI_API_KEY:
        logger.warning("OPENAI_API_KEY not set - grading and ATS checks will return fallbacks")

    init_db()
    logger.info("EchoPrep API started")
    yield
    logger.info("EchoPrep API shutting down")


# ============================================
# ✅ FASTAPI APP INIT
# ============================================

app = FastAPI(
    title="EchoPrep API",
    version="1.0.0",
    docs_url="/docs" if config.ENVIRONMENT != "production" else None,
    redoc_url="/redoc" if config.ENVIRONMENT != "production" else None,
    lifespan=lifespan,
)

# ✅ CORS - explicit origins plus Netlify deploy previews, with cookies
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_origin_regex=config.CORS_ORIGIN_REGEX,
    allow_credentials=True,
    allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type"],
)


# ============================================
# ✅ ERROR ENVELOPE
# ============================================

@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    errors = [] if isinstance(exc.detail, str) else [exc.detail]
    return api_error(exc.status_code, message, errors)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg", ""), "type": err.get("type", "")}
        for err in exc.errors()
    ]
    body = sanitize_log_data(exc.body) if isinstance(exc.body, dict) else None
    logger.warning(
        f"Validation failed on {request.method} {request.url.path}: "
        f"fields={[e['loc'] for e in errors]}, body={body}"
    )
    return api_error(status.HTTP_422_UNPROCESSABLE_ENTITY, "Invalid request data", errors)


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {type(exc).__name__}: {exc}", exc_info=True)
    status_code = getattr(exc, "status_code", None)
    if not isinstance(status_code, int) or not 400 <= status_code < 600:
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    return api_error(status_code, "Something went wrong")


# ============================================
# ✅ REGISTER ALL ROUTERS
# ============================================

app.include_router(users.router, prefix=config.API_V1_PREFIX)
app.include_router(interview.router, prefix=config.API_V1_PREFIX)
app.include_router(resume.router, prefix=config.API_V1_PREFIX)
app.include_router(health.router)


@app.get("/")
def root():
    return {"status": "EchoPrep API is running"}
