# anonbox/main.py

import logging
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import SQLAlchemyError

from anonbox.api import blocks, messages, users
from anonbox.core.config import get_settings
from anonbox.core.errors import AbuseControlError, RateLimitError, StoreUnavailable
from anonbox.core.throttle import limiter
from anonbox.utils.logger import setup_logger

setup_logger()
logger = logging.getLogger(__name__)

app = FastAPI(
    title="anonbox Backend",
    version="1.0.0",
    description="Abuse-controlled anonymous inbox backend"
)
app.state.limiter = limiter

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(AbuseControlError)
def abuse_control_error_handler(request: Request, exc: AbuseControlError):
    headers = None
    if isinstance(exc, RateLimitError) and exc.retry_after is not None:
        headers = {"Retry-After": str(exc.retry_after)}
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


@app.exception_handler(RequestValidationError)
def request_validation_error_handler(request: Request, exc: RequestValidationError):
    # Malformed or missing fields are a plain 400 here
    return JSONResponse(
        status_code=400,
        content={"error": "Invalid request data", "code": "validation_error", "details": jsonable_encoder(exc.errors())},
    )


@app.exception_handler(SQLAlchemyError)
def store_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error("Store error on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=500, content=StoreUnavailable().to_dict())


app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# Register routers
app.include_router(users.router, tags=["Users"])
app.include_router(messages.router, tags=["Messages"])
app.include_router(blocks.router, tags=["Blocks"])


@app.get("/health")
def health_check():
    return {"status": "ok"}
