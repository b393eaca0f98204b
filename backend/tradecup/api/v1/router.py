from fastapi import APIRouter
from tradecup.api.v1.endpoints import admin, cron, cups, health, lbank

api_router = APIRouter()

api_router.include_router(health.router, prefix="/health", tags=["health"])
api_router.include_router(cron.router, prefix="/cron", tags=["cron"])
api_router.include_router(cups.router, prefix="/cups", tags=["cups"])
api_router.include_router(lbank.router, prefix="/lbank", tags=["lbank"])
api_router.include_router(admin.router, prefix="/admin", tags=["admin"])
