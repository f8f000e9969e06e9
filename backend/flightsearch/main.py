import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from flightsearch.api.v1.router import api_router
from flightsearch.config import settings
from flightsearch.services.registry import SessionRegistry


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app.state.registry = SessionRegistry()

    yield

    # Shutdown: stop polling, close HTTP clients and the destination cache
    await app.state.registry.aclose()


app = FastAPI(
    title="Flight Search API",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


app.include_router(api_router)


@app.get("/api/v1/health")
async def health():
    return {"status": "ok", "env": settings.app_env}
