"""
API v1 Router

Aggregates all v1 endpoint routers.
"""

from fastapi import APIRouter

from app.api.v1.endpoints import ai, applications, auth, contact, posts, quiz, tickets, uploads, users

router = APIRouter()

# Identity and sessions
router.include_router(auth.router)
router.include_router(users.router)

# Support tickets
router.include_router(tickets.router)

# Community
router.include_router(posts.router)
router.include_router(uploads.router)

# Intake
router.include_router(quiz.router)
router.include_router(contact.router)
router.include_router(applications.router)
router.include_router(applications.admin_router)

# Assistant
router.include_router(ai.router)
