from fastapi import APIRouter

from backend.core.conf import settings
from backend.src.billing.endpoints import billing_router, handle_billplz_callback

router = APIRouter()

router.include_router(billing_router, prefix=f"{settings.FASTAPI_API_V1_PATH}/billing", tags=["Billing"])

# Billplz posts to the callback URL baked into each bill
router.add_api_route(
    settings.BILLPLZ_CALLBACK_PATH,
    handle_billplz_callback,
    methods=["POST"],
    tags=["Billing"],
    include_in_schema=False,
)
