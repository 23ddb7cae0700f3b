"""Session Auth API Router - aggregates all API routes."""

from fastapi import APIRouter

from sessionauth.api import auth

# Main API router - all routes will be prefixed with /api
api_router = APIRouter(prefix="/api")

api_router.include_router(auth.router)
