# main.py

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

import config
from db import get_directory_store
from email_utils import EmailNotifier
from identity import get_identity_provider
from schemas import ErrorResponse, SuccessResponse
from workflow import KINDS, InvalidFieldError, OnboardingError, OnboardingWorkflow

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

ERROR_RESPONSES = {code: {"model": ErrorResponse} for code in (400, 404, 500)}


# ----------------------------- Lifecycle -----------------------------
@asynccontextmanager
async def lifespan(app: FastAPI):
    for problem in config.validate_config():
        logger.warning("Config: %s", problem)

    store = None
    if getattr(app.state, "workflow", None) is None:
        store = await get_directory_store()
        app.state.workflow = OnboardingWorkflow(
            store=store,
            identity=get_identity_provider(),
            notifier=EmailNotifier(),
        )

    yield

    if store is not None:
        await store.close()


# ----------------------------- Error Rendering -----------------------------
async def _onboarding_error(request: Request, exc: OnboardingError):
    return JSONResponse(status_code=exc.status_code, content=ErrorResponse(error=exc.message).model_dump())


async def _http_error(request: Request, exc: StarletteHTTPException):
    message = "Method not allowed" if exc.status_code == 405 else str(exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(error=message).model_dump(),
        headers=getattr(exc, "headers", None),
    )


# ----------------------------- Handlers -----------------------------
async def _onboard(request: Request, kind: str):
    try:
        payload = await request.json()
    except ValueError:
        raise InvalidFieldError("body", "Request body must be valid JSON")
    if not isinstance(payload, dict):
        raise InvalidFieldError("body", "Request body must be a JSON object")

    try:
        result = await request.app.state.workflow.onboard(kind, payload)
    except OnboardingError:
        raise
    except Exception as e:
        logger.exception("Error creating %s", kind)
        raise OnboardingError(str(e) or f"Failed to create {KINDS[kind].label}")

    return SuccessResponse(data=result.data)


def create_app(workflow: Optional[OnboardingWorkflow] = None) -> FastAPI:
    app = FastAPI(title="VateLanka Admin API", lifespan=lifespan)
    if workflow is not None:
        app.state.workflow = workflow

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ALLOW_ORIGINS,
        allow_credentials=True,
        allow_methods=config.CORS_ALLOW_METHODS,
        allow_headers=config.CORS_ALLOW_HEADERS,
    )
    app.add_exception_handler(OnboardingError, _onboarding_error)
    app.add_exception_handler(StarletteHTTPException, _http_error)

    @app.get("/")
    def health_check():
        return {"status": "API running"}

    @app.post("/api/admin/createSupervisor", response_model=SuccessResponse, responses=ERROR_RESPONSES)
    async def create_supervisor(request: Request):
        return await _onboard(request, "supervisor")

    @app.post("/api/admin/createTruck", response_model=SuccessResponse, responses=ERROR_RESPONSES)
    async def create_truck(request: Request):
        return await _onboard(request, "driver")

    return app


app = create_app()
