"""Routers mounted under ``/api``."""

from fastapi import APIRouter

from api.routes import admin, auth, challonge, dashboard, health, leaderboard, matches, users

api_router = APIRouter(prefix="/api")
for module in (health, auth, users, matches, leaderboard, dashboard, admin, challonge):
    api_router.include_router(module.router)

__all__ = ["api_router"]
