# This file makes the 'routes' directory a Python package.

from fastapi import APIRouter

from .auth_routes import router as auth_router
from .progress_routes import router as progress_router
from .leaderboard_routes import router as leaderboard_router
from .user_routes import router as user_router

# Main API router; every feature router is mounted under /api/v1
api_router_v1 = APIRouter(prefix="/api/v1")

api_router_v1.include_router(auth_router)
api_router_v1.include_router(progress_router)
api_router_v1.include_router(leaderboard_router)
api_router_v1.include_router(user_router)

__all__ = [
    "api_router_v1" # Export the main router
]
