from fastapi import APIRouter

from routers import auth, dashboard, ratings, stores, users

api_router = APIRouter()
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(users.router, prefix="/users", tags=["users"])
api_router.include_router(stores.router, prefix="/stores", tags=["stores"])
api_router.include_router(ratings.router, prefix="/ratings", tags=["ratings"])
api_router.include_router(dashboard.router, prefix="/dashboard", tags=["dashboard"])
