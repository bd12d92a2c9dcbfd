"""API router for v1 endpoints."""

from fastapi import APIRouter

from app.api import tools

router = APIRouter()

# Tool catalog and client-profile pre-fill
router.include_router(tools.router, tags=["tools"])
