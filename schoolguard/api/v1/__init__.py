# API v1 routes
from fastapi import APIRouter

from schoolguard.api.v1 import admin, auth, permissions
from schoolguard.models.common import ErrorResponse

router = APIRouter()

_guarded = {
    401: {"model": ErrorResponse, "description": "Missing or invalid credentials"},
    403: {"model": ErrorResponse, "description": "Permission denied"},
}

router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
router.include_router(permissions.router, prefix="/permissions", tags=["Permissions"], responses=_guarded)
router.include_router(admin.router, prefix="/admin", tags=["Administration"], responses=_guarded)
