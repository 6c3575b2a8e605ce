from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from simplifly.api.v1.api import api_router
from simplifly.core.config import Settings, settings as default_settings
from simplifly.core.logger import configure_logging, get_logger
from simplifly.db.session import create_db_engine, init_db

logger = get_logger("simplifly.main")


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    return f"{field}: {first.get('msg')}" if field else first.get("msg", "Invalid request")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the application around one Settings instance and one database engine.

    Both are attached to app.state so request handlers never read module globals;
    tests swap app.state.engine for an in-memory database before the first request.
    """
    settings = settings or default_settings
    configure_logging(settings, force=True)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        init_db(app.state.engine)
        logger.info("startup", project=settings.PROJECT_NAME, version=settings.VERSION)
        yield
        app.state.engine.dispose()
        logger.info("shutdown")

    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.VERSION,
        openapi_url=f"{settings.API_V1_STR}/openapi.json",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.engine = create_db_engine(settings)

    # Set up CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,  # Cookie authentication
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Every error body is {"message": ...}
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"message": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content={"message": _validation_message(exc)})

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception("unhandled_error", path=request.url.path, method=request.method)
        return JSONResponse(status_code=500, content={"message": "Internal server error"})

    app.include_router(api_router, prefix=settings.API_V1_STR)
    return app


app = create_app()
