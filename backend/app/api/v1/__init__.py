"""
API routes
"""
from fastapi import APIRouter
from app.api.v1 import auth, user_subscriptions, subscriptions, plans, admin

api_router = APIRouter()

# Register sub-routers
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(user_subscriptions.router, tags=["user subscriptions"])
api_router.include_router(subscriptions.router, prefix="/subscriptions", tags=["subscriptions"])
api_router.include_router(plans.router, prefix="/plan", tags=["plans"])
api_router.include_router(admin.router, prefix="/admin", tags=["admin"])
