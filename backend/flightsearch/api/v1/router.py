from fastapi import APIRouter

from flightsearch.api.v1.routes.explore import router as explore_router
from flightsearch.api.v1.routes.sessions import router as sessions_router

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(sessions_router, prefix="/sessions", tags=["sessions"])
api_router.include_router(explore_router, prefix="/explore", tags=["explore"])
