from fastapi import APIRouter

from umkm.api.v1.endpoints.health import router as health_router
from umkm.api.v1.endpoints.public_listings import router as public_listings_router
from umkm.api.v1.endpoints.admin_auth import router as admin_auth_router
from umkm.api.v1.endpoints.admin_listings import router as admin_listings_router
from umkm.api.v1.endpoints.internal import router as internal_router


router = APIRouter(prefix="/v1")
router.include_router(health_router, tags=["health"])
router.include_router(public_listings_router, tags=["directory"])
router.include_router(admin_auth_router, tags=["admin"])
router.include_router(admin_listings_router, tags=["admin"])
router.include_router(internal_router, tags=["internal"])
