"""API v1 router aggregator.

All v1 endpoint routers are included here and mounted at /v1.
"""

from fastapi import APIRouter

from webapp.api.v1 import accounts, media, verification

router = APIRouter()

router.include_router(accounts.router, tags=["accounts"])
router.include_router(media.router, tags=["profile-pic"])
router.include_router(verification.router, tags=["verification"])
