"""
API v1 Router

Context-scoped collections nest under /contexts/{context_id}; projects and
posts are also addressable directly by id.
"""

from fastapi import APIRouter
from . import contexts, pending_joins, posts, projects, public

router = APIRouter()

router.include_router(contexts.router, prefix="/contexts", tags=["Contexts"])
router.include_router(projects.router, prefix="/projects", tags=["Projects"])
router.include_router(posts.router, prefix="/posts", tags=["Posts"])
router.include_router(pending_joins.router, prefix="/pending-joins", tags=["Pending joins"])

# Unauthenticated
router.include_router(public.router, prefix="/public", tags=["Public"])


@router.get("/", tags=["API"])
async def api_root():
    """API root: version and available endpoints."""
    return {
        "api": "v1",
        "version": "0.1.0",
        "endpoints": [
            "/contexts",
            "/projects/{project_id}",
            "/posts/{post_id}",
            "/pending-joins",
            "/public/{context_id}/dashboard",
        ],
    }
