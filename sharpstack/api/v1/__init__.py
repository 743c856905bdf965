"""
API v1 routes.
"""

from fastapi import APIRouter

from sharpstack.api.v1 import blind_spots, email_preferences, skills, training

router = APIRouter()

router.include_router(training.router, prefix="/training", tags=["Training"])
router.include_router(blind_spots.router, prefix="/blind-spots", tags=["Blind Spots"])
router.include_router(skills.router, prefix="/skills", tags=["Skills"])
router.include_router(email_preferences.router, prefix="/email-preferences", tags=["Email Preferences"])
