"""Main API router - aggregates all route modules."""
from fastapi import APIRouter, Depends

from backend.app.api.deps import general_rate_limit
from backend.app.api.routes import anime

api_router = APIRouter(prefix="/anime", dependencies=[Depends(general_rate_limit)])

api_router.include_router(anime.router)
