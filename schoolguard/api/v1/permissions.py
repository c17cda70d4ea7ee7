"""
Permission Check API Routes
Single and batch checks for the calling principal
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from schoolguard.api.dependencies import get_authenticated
from schoolguard.core.logging import get_logger
from schoolguard.models.auth import PrincipalResponse
from schoolguard.models.permission import (
    BatchCheckRequest,
    BatchCheckResponse,
    BatchCheckResultItem,
    EffectivePermissionResponse,
    MyPermissionsResponse,
    PermissionCheckRequest,
    PermissionCheckResponse,
)
from schoolguard.permissions.evaluator import effective_permissions, evaluate, evaluate_batch
from schoolguard.permissions.guard import GuardResult, PermissionGuard, RouteRequirement

logger = get_logger(__name__)
router = APIRouter()


class RouteCheckRequest(BaseModel):
    path: str = Field(..., min_length=1, max_length=512, pattern="^/")


@router.get("/me", response_model=MyPermissionsResponse)
async def my_permissions(auth: GuardResult = Depends(get_authenticated)):
    """Effective permissions of the calling user"""
    return MyPermissionsResponse(
        user=PrincipalResponse.from_user_model(auth.principal),
        permissions=[
            EffectivePermissionResponse(
                resource=p.resource,
                action=p.action,
                scope=p.scope,
                source=p.source.value,
                override_id=p.override_id,
            )
            for p in effective_permissions(auth.context)
        ],
    )


@router.post("/check", response_model=PermissionCheckResponse, response_model_exclude_none=True)
async def check_permission(
    request: PermissionCheckRequest,
    auth: GuardResult = Depends(get_authenticated),
):
    """
    Check one (resource, action) for the calling user

    Unknown resources or actions are rejected with 400.
    """
    decision = evaluate(auth.context, request.resource, request.action)
    return PermissionCheckResponse(**decision.to_dict())


@router.post("/check-batch", response_model=BatchCheckResponse, response_model_exclude_none=True)
async def check_permissions_batch(
    request: BatchCheckRequest,
    auth: GuardResult = Depends(get_authenticated),
):
    """
    Check many (resource, action) pairs with one context

    Results keep the input order. Unknown entries are reported as not granted.
    """
    results = evaluate_batch(
        auth.context,
        [(check.resource, check.action) for check in request.checks],
    )
    return BatchCheckResponse(
        results=[BatchCheckResultItem(**result.to_dict()) for result in results]
    )


@router.post("/route-check", response_model=PermissionCheckResponse, response_model_exclude_none=True)
async def check_route(
    request: RouteCheckRequest,
    auth: GuardResult = Depends(get_authenticated),
):
    """Whether the calling user's role may open a UI path"""
    decision = PermissionGuard.decide(auth.context, RouteRequirement(request.path))
    return PermissionCheckResponse(**decision.to_dict())
