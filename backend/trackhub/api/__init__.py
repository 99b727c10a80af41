"""API router package."""

from fastapi import APIRouter

from trackhub.api.v1 import auth, comments, health, items, projects, tags, users

router = APIRouter()

router.include_router(health.router, tags=["Health"])
router.include_router(auth.router, prefix="/auth", tags=["Auth"])
router.include_router(users.router, prefix="/users", tags=["Users"])
router.include_router(projects.router, prefix="/projects", tags=["Projects"])
router.include_router(items.router, prefix="/items", tags=["Items"])
router.include_router(tags.router, prefix="/tags", tags=["Tags"])
router.include_router(comments.router, prefix="/comments", tags=["Comments"])
