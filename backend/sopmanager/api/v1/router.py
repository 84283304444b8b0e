from fastapi import APIRouter
from sopmanager.api.v1.endpoints import auth, restaurants, training, i18n, analytics, health
from sopmanager.api.v1.endpoints.sop import sop_router
from sopmanager.api.v1.endpoints.admin import admin_router

api_router = APIRouter()

# Deep health checks (/health/live, /health/ready, /health/deep)
api_router.include_router(health.router)

api_router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
api_router.include_router(restaurants.router, prefix="/restaurants", tags=["Restaurants"])
api_router.include_router(sop_router)
api_router.include_router(training.router, prefix="/training", tags=["Training"])
api_router.include_router(i18n.router, prefix="/i18n", tags=["Translations"])
api_router.include_router(analytics.router, prefix="/analytics", tags=["Analytics"])
api_router.include_router(admin_router)
