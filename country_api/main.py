import logging
import random
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException

from country_api.config import settings
from country_api.database import build_engine, build_session_factory, init_db
from country_api.limits import close_rate_limiting, init_rate_limiting
from country_api.logging import init_logging, RequestLoggingMiddleware, setup_query_logging
from country_api.routes import countries, status

logger = logging.getLogger("country_api")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: the store engine lives for the whole process
    engine = build_engine(settings.database_url)
    setup_query_logging(engine)
    init_db(engine)
    app.state.engine = engine
    app.state.session_factory = build_session_factory(engine)
    await init_rate_limiting(app)
    try:
        yield
    finally:
        await close_rate_limiting(app)
        engine.dispose()
        logger.info("Database connection pool closed.")


def create_app() -> FastAPI:
    init_logging()

    app = FastAPI(
        title="Country Currency & Exchange API",
        version="1.0.0",
        description=(
            "REST API to explore countries, currencies, population, and simple GDP estimates.\n\n"
            "Features:\n"
            "- Refresh from REST Countries and open exchange rates\n"
            "- Filter by region and currency\n"
            "- Sort by population or estimated GDP\n"
            "- Lightweight status and a generated summary image\n\n"
            "Rate limiting can be enabled via Redis (set REDIS_URL)."
        ),
        lifespan=lifespan,
    )
    app.state.rng = random.Random()

    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(countries.router, prefix="/countries", tags=["Countries"])
    app.include_router(status.router, prefix="/status", tags=["Status"])

    @app.get("/")
    def root():
        return {"message": "Country Currency & Exchange API running. Visit /docs for API documentation."}

    register_exception_handlers(app)
    return app


# -------------------------------
# Unified error response handlers
# -------------------------------
def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        log = logger.error if exc.status_code >= 500 else logger.warning
        log(
            "HTTPException: %s %s -> %s | detail=%s",
            request.method,
            request.url.path,
            exc.status_code,
            exc.detail,
        )
        body = {"error": exc.detail if isinstance(exc.detail, str) else "Error"}
        if isinstance(exc.detail, dict):
            body = {
                "error": exc.detail.get("error") or "Error",
                "details": exc.detail.get("details"),
            }
        return JSONResponse(status_code=exc.status_code, content=body, headers=exc.headers)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        logger.error(
            "ValidationError: %s %s | errors=%s",
            request.method,
            request.url.path,
            exc.errors(),
        )
        return JSONResponse(
            status_code=400,
            content={
                "error": "Validation failed",
                "details": jsonable_errors(exc),
            },
        )

    @app.exception_handler(SQLAlchemyError)
    async def database_exception_handler(request: Request, exc: SQLAlchemyError):
        logger.exception(
            "Database error: %s %s",
            request.method,
            request.url.path,
            exc_info=exc,
        )
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception(
            "Unhandled exception: %s %s",
            request.method,
            request.url.path,
            exc_info=exc,
        )
        return JSONResponse(status_code=500, content={"error": "Internal server error"})


def jsonable_errors(exc: RequestValidationError) -> list:
    # ctx may carry exception objects that JSONResponse cannot encode
    return [{k: v for k, v in err.items() if k != "ctx"} for err in exc.errors()]


app = create_app()
