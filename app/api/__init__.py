"""API router for v1 endpoints."""

from fastapi import APIRouter

from app.api import sessions

router = APIRouter()

# Sessions, analysis, documents, catalog
router.include_router(sessions.router)
