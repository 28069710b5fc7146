from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from skillnet.api.v1.router import api_router
from skillnet.core.config import settings
from skillnet.core.errors import ErrorCode, SkillProtocolError
from skillnet.core.logging import setup_logging
from skillnet.schemas.skills import ErrorResponse
from skillnet.services.skill_node_service import SkillNode

setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    node: SkillNode = app.state.node
    await node.start()
    logger.info("application started", extra={"context": {"component": "app", "event": "startup"}})
    yield
    await node.stop()
    logger.info("application stopped", extra={"context": {"component": "app", "event": "shutdown"}})


async def skill_protocol_error_handler(request: Request, exc: SkillProtocolError) -> JSONResponse:
    body = ErrorResponse(error=exc.message, code=exc.code.value).model_dump()
    if exc.step is not None:
        body["step"] = exc.step
    return JSONResponse(status_code=exc.status_code, content=body)


async def request_validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    message = errors[0].get("msg", "Invalid request body.") if errors else "Invalid request body."
    code = ErrorCode.INVALID_CHAIN if request.url.path.endswith("/skill/chain") else ErrorCode.INVALID_CALL
    body = ErrorResponse(error=str(message), code=code.value).model_dump()
    return JSONResponse(status_code=400, content=body)


def create_app(node: SkillNode | None = None) -> FastAPI:
    application = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        lifespan=lifespan,
    )
    application.state.node = node or SkillNode()
    application.add_exception_handler(SkillProtocolError, skill_protocol_error_handler)
    application.add_exception_handler(RequestValidationError, request_validation_error_handler)
    application.include_router(api_router, prefix=settings.API_PREFIX)

    @application.get("/health")
    async def health() -> dict:
        current: SkillNode = application.state.node
        return {
            "status": "ok",
            "provider": settings.PROVIDER_NAME,
            "version": settings.PROTOCOL_VERSION,
            "skills": len(current.dispatcher.registry),
        }

    return application


app = create_app()
