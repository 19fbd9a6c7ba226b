from fastapi import APIRouter

from app.api import referral_uses

api_router = APIRouter(prefix="/api")

api_router.include_router(referral_uses.router)
