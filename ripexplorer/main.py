from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from importlib.metadata import version as pkg_version

import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ripexplorer.api import (
    compare_router,
    extract_router,
    health_router,
    sets_router,
    trade_router,
    users_router,
)
from ripexplorer.api.deps import Services
from ripexplorer.config import settings
from ripexplorer.db.database import init_db
from ripexplorer.models.failure import FailureResponse, KnownError
from ripexplorer.scrapers.alchemy import AlchemyClient


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    await init_db()
    async with httpx.AsyncClient(follow_redirects=True, timeout=30.0) as http:
        alchemy = AlchemyClient(client=http) if settings.alchemy_api_key else None
        app.state.services = Services(http=http, alchemy=alchemy)
        yield


app = FastAPI(
    title=settings.app_name,
    version=pkg_version("ripexplorer"),
    lifespan=lifespan,
)


@app.exception_handler(KnownError)
async def known_error_handler(_request: Request, exc: KnownError) -> JSONResponse:
    """Render a KnownError as {"failure": FailureDetail}."""
    body = FailureResponse(failure=exc.to_detail())
    return JSONResponse(status_code=exc.status_code, content=body.model_dump(mode="json"))


app.include_router(compare_router)
app.include_router(extract_router)
app.include_router(health_router)
app.include_router(sets_router)
app.include_router(trade_router)
app.include_router(users_router)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Tighten in production
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)
