import logging

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from sqlalchemy.engine import Engine
from starlette.exceptions import HTTPException as StarletteHTTPException

from notifyhub.api.router import api_router
from notifyhub.core.config import settings
from notifyhub.core.exceptions import NotifyHubError
from notifyhub.core.limiter import limiter, rate_limit_exceeded_handler
from notifyhub.db import engine as default_engine
from notifyhub.db import init_db
from notifyhub.services.accounts import AccountDirectory
from notifyhub.services.dispatch import DispatchEngine
from notifyhub.services.history import DeliveryHistoryStore
from notifyhub.services.subscriptions import SubscriptionRegistry
from notifyhub.services.web_push import DeliveryProvider, get_delivery_provider

logger = logging.getLogger(__name__)


def create_application(
    engine: Engine | None = None,
    provider: DeliveryProvider | None = None,
) -> FastAPI:
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    app = FastAPI(title=settings.PROJECT_NAME, version="0.1.0")

    bind = engine or default_engine
    app.state.engine = bind
    app.state.registry = SubscriptionRegistry(bind)
    app.state.accounts = AccountDirectory(bind)
    app.state.history = DeliveryHistoryStore(bind)
    app.state.dispatch_engine = DispatchEngine(
        registry=app.state.registry,
        accounts=app.state.accounts,
        history=app.state.history,
        provider=provider or get_delivery_provider(),
    )
    app.state.limiter = limiter

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.BACKEND_CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        response = await call_next(request)
        logger.info(f"{request.method} {request.url.path} -> {response.status_code}")
        return response

    @app.exception_handler(NotifyHubError)
    async def notifyhub_exception_handler(request: Request, exc: NotifyHubError):
        if exc.status_code >= 500:
            logger.error(f"{type(exc).__name__} on {request.url.path}: {exc.message}")
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "message": exc.message},
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "message": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "success": False,
                "message": "Invalid request data",
                "errors": jsonable_encoder(exc.errors()),
            },
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled exception on {request.method} {request.url.path}: {exc}", exc_info=exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"success": False, "message": "Internal server error"},
        )

    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

    app.include_router(api_router, prefix=settings.API_PREFIX)

    @app.on_event("startup")
    def _startup() -> None:
        init_db(bind)

    return app


app = create_application()
