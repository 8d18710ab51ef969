"""FastAPI application setup."""

from contextlib import asynccontextmanager
from http import HTTPStatus

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..app import Application
from ..logging_config import get_logger
from .routes import control, events, messaging

logger = get_logger(__name__)


def problem_response(status_code: int, detail: str | None = None) -> JSONResponse:
    """Problem-details error body."""
    return JSONResponse(
        status_code=status_code,
        content={
            "type": "about:blank",
            "title": HTTPStatus(status_code).phrase,
            "status": status_code,
            "detail": detail,
        },
    )


def create_fastapi_app(
    application: Application | None = None,
    agent_type: str = "codex",
    cors_origins: list[str] | None = None,
) -> FastAPI:
    """Create and configure FastAPI application around an Application."""
    application = application or Application()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Manage application lifespan."""
        await application.start()
        yield
        await application.stop()

    fastapi_app = FastAPI(
        title="Session Host API",
        description="HTTP facade over an agent runtime session",
        version="0.1.0",
        lifespan=lifespan,
    )
    fastapi_app.state.application = application

    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins or ["http://localhost:5173"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @fastapi_app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return problem_response(exc.status_code, str(exc.detail))

    @fastapi_app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        detail = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()
        )
        logger.debug("Rejected request to %s: %s", request.url.path, detail)
        return problem_response(400, detail)

    fastapi_app.include_router(control.create_control_router(application, agent_type))
    fastapi_app.include_router(messaging.create_messaging_router(application))
    fastapi_app.include_router(events.create_events_router(application))

    return fastapi_app
