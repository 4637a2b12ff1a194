from fastapi import APIRouter
from engagement.api.v1.endpoints import (
    health, users, projects, bids, milestones,
    assignments, reviews, notifications, uploads
)

api_router = APIRouter()

api_router.include_router(health.router, prefix="/health", tags=["health"])
api_router.include_router(users.router, prefix="/users", tags=["users"])

# Engagement lifecycle
api_router.include_router(projects.router, prefix="/projects", tags=["projects"])
api_router.include_router(bids.router, prefix="/bids", tags=["bids"])
api_router.include_router(milestones.router, prefix="/milestones", tags=["milestones"])
api_router.include_router(assignments.router, prefix="/assignments", tags=["assignments"])
api_router.include_router(reviews.router, prefix="/reviews", tags=["reviews"])

# Feed and files
api_router.include_router(notifications.router, prefix="/notifications", tags=["notifications"])
api_router.include_router(uploads.router, prefix="/uploads", tags=["uploads"])
