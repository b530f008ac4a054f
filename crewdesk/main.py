import time
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError, InterfaceError
from crewdesk.core.config import settings
from crewdesk.core.logging import setup_logging, request_id_ctx
from dotenv import load_dotenv

# Load environment variables from .env file before anything else
load_dotenv()

from crewdesk.api.router import api_router
from crewdesk.core.db import init_models
from crewdesk.core.errors import DomainError
import asyncio

from crewdesk.modules.events.outbox import run_outbox_relay
from crewdesk.platform.provider_registry import registry


setup_logging()
app = FastAPI(title=settings.APP_NAME)

import logging

@app.middleware("http")
async def add_request_id(request: Request, call_next):
    rid = request.headers.get("x-request-id", "-")
    request_id_ctx.set(rid)
    response = await call_next(request)
    return response


logger = logging.getLogger(__name__)

@app.middleware("http")
async def log_requests(request: Request, call_next):
    start_time = time.time()

    response = await call_next(request)

    process_time = (time.time() - start_time) * 1000
    formatted_process_time = f"{process_time:.2f}ms"

    logger.info(
        f"Request: {request.method} {request.url.path} - Response: {response.status_code} - Time: {formatted_process_time}"
    )

    return response

def error_body(kind: str, message: str, details: dict | None = None) -> dict:
    return {"error": {"kind": kind, "message": message, "details": details or {}}}

@app.exception_handler(DomainError)
async def domain_exception_handler(request: Request, exc: DomainError):
    if exc.status_code >= 500:
        logger.error(f"{exc.kind} on {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=jsonable_encoder({"error": exc.to_dict()}))

@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = [
        {"field": ".".join(str(p) for p in e.get("loc", ()) if p not in ("body", "query", "path")), "message": e.get("msg")}
        for e in exc.errors()
    ]
    return JSONResponse(status_code=422, content=jsonable_encoder(error_body("validation_error", "Request validation failed.", {"errors": errors})))

@app.exception_handler(OperationalError)
@app.exception_handler(InterfaceError)
async def storage_exception_handler(request: Request, exc: Exception):
    logger.error(f"Storage unavailable for request {request.method} {request.url.path}", exc_info=True)
    return JSONResponse(status_code=503, content=error_body("storage_unavailable", "Storage is temporarily unavailable."))

@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.critical(f"Unhandled exception for request {request.method} {request.url.path}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content=error_body("internal_error", "An internal server error occurred."),
    )


@app.on_event("startup")
async def on_startup():
    await init_models()
    app.state.outbox_task = asyncio.create_task(run_outbox_relay())

@app.on_event("shutdown")
async def on_shutdown():
    task = getattr(app.state, "outbox_task", None)
    if task:
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
    await registry.event_bus().close()


app.include_router(api_router, prefix=settings.API_PREFIX)
