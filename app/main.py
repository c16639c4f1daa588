# app/main.py
import logging
import time
from typing import Iterable, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.config import settings
from app.database import engine, init_db
from app.errors import AppError, DependencyUnavailable
from app.logging_config import setup_logging
from app.routers import auth, courses, enrollments
from app.schemas.common import fail, ok

setup_logging()
logger = logging.getLogger("app")

# 每個服務可以單獨部署，彼此只共用 JWT_SECRET
SERVICE_ROUTERS = {
    "identity": [auth.router, auth.me_router],
    "courses": [courses.router],
    "enrollments": [enrollments.router],
}

STATUS_CODES = {
    400: "InvalidInput",
    401: "Unauthenticated",
    403: "Forbidden",
    404: "NotFound",
    405: "MethodNotAllowed",
}


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        if exc.status_code >= 500:
            logger.warning("%s %s failed: %s (%s)", request.method, request.url.path, exc.code, exc.message)
        return JSONResponse(status_code=exc.status_code, content=fail(exc.code))

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        logger.info("Invalid request %s %s: %s", request.method, request.url.path, exc.errors())
        return JSONResponse(status_code=400, content=fail("InvalidInput"))

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        code = STATUS_CODES.get(exc.status_code, "InternalError" if exc.status_code >= 500 else "InvalidInput")
        return JSONResponse(status_code=exc.status_code, content=fail(code), headers=exc.headers)

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        # stack trace is logged by the request middleware
        return JSONResponse(status_code=500, content=fail("InternalError"))


def create_app(services: Optional[Iterable[str]] = None) -> FastAPI:
    names = set(services) if services is not None else settings.service_names
    unknown = names - SERVICE_ROUTERS.keys()
    if unknown:
        raise ValueError(f"Unknown services: {sorted(unknown)}")

    # 建立資料表（若不存在）
    init_db()

    app = FastAPI(title="Course Enrollment Backend", version="1.0.0")

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.time()
        try:
            response = await call_next(request)
            ms = int((time.time() - start) * 1000)
            logger.info("%s %s -> %s (%dms)", request.method, request.url.path, response.status_code, ms)
            return response
        except Exception:
            ms = int((time.time() - start) * 1000)
            logger.exception("Unhandled error %s %s (%dms)", request.method, request.url.path, ms)
            raise

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    # Routers
    for name in sorted(names):
        for router in SERVICE_ROUTERS[name]:
            app.include_router(router)

    @app.get("/")
    def root():
        return ok({"message": "Course backend is running!", "services": sorted(names)})

    @app.get("/health")
    def health():
        try:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            logger.exception("Health check failed")
            raise DependencyUnavailable("Database unreachable") from e
        return ok({"status": "ok"})

    logger.info("Started with services: %s", ", ".join(sorted(names)))
    return app


app = create_app()
