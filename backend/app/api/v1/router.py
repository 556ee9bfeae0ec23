"""
API v1 Router.

Aggregates all v1 API endpoints.
"""

from fastapi import APIRouter
from backend.app.api.v1.endpoints import auth, admin, roster, panitia, dosen, reports

router = APIRouter()

# Include authentication endpoints
router.include_router(auth.router)

# Include admin endpoints
router.include_router(admin.router)

router.include_router(roster.router)

# Committee score ledgers
router.include_router(panitia.router)

# Lecturer subject scores
router.include_router(dosen.router)

router.include_router(reports.router)
