from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from app.api.router import api_router
from app.core.config import settings
from app.core.otel import init_otel
from app.db.session import engine
from app.middleware.request_id import RequestIdMiddleware
from app.models import Base
from app.services.social.errors import (
    CommentNotFound,
    EmptyComment,
    InvalidIdentity,
    NotAuthenticated,
    StoreUnavailable,
)
from app.services.social.factory import get_side_effects
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

logging.basicConfig(level=settings.log_level.upper())
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.db_auto_create and settings.social_store == "sql":
        Base.metadata.create_all(bind=engine)
    yield
    # Let in-flight feed/cache writes finish before the loop goes away.
    await get_side_effects().drain()


app = FastAPI(title=settings.api_name, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestIdMiddleware)


@app.exception_handler(NotAuthenticated)
async def not_authenticated_handler(request: Request, exc: NotAuthenticated):
    return JSONResponse(status_code=401, content={"detail": "Not authenticated"})


@app.exception_handler(InvalidIdentity)
async def invalid_identity_handler(request: Request, exc: InvalidIdentity):
    return JSONResponse(status_code=422, content={"detail": "Book has no usable identity"})


@app.exception_handler(EmptyComment)
async def empty_comment_handler(request: Request, exc: EmptyComment):
    return JSONResponse(status_code=422, content={"detail": "Comment is empty"})


@app.exception_handler(CommentNotFound)
async def comment_not_found_handler(request: Request, exc: CommentNotFound):
    return JSONResponse(status_code=404, content={"detail": "Comment not found"})


@app.exception_handler(StoreUnavailable)
async def store_unavailable_handler(request: Request, exc: StoreUnavailable):
    logger.warning(
        "social store unavailable",
        extra={"path": request.url.path, "request_id": getattr(request.state, "request_id", None)},
    )
    return JSONResponse(status_code=503, content={"detail": "Social store unavailable"})


app.include_router(api_router)

init_otel(app)
