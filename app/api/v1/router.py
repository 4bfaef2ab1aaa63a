"""API v1 router aggregation.

Includes all endpoint modules with consistent prefix and tags. All routes
use dependencies from app.api.v1.dependencies (no manual repo/service construction).
"""

from fastapi import APIRouter

from app.api.v1.endpoints import (
    automation_rules,
    health,
    workflow_approvals,
    workflow_instances,
    workflow_triggers,
    workflows,
)

api_router = APIRouter()

api_router.include_router(health.router, prefix="/health", tags=["health"])
api_router.include_router(workflows.router, prefix="/workflows", tags=["workflows"])
api_router.include_router(
    workflow_instances.router, prefix="/workflow-instances", tags=["workflow-instances"]
)
api_router.include_router(
    workflow_approvals.router, prefix="/workflow-approvals", tags=["workflow-approvals"]
)
api_router.include_router(
    workflow_triggers.router, prefix="/workflow-triggers", tags=["workflow-triggers"]
)
api_router.include_router(
    automation_rules.router, prefix="/automation-rules", tags=["automation-rules"]
)
