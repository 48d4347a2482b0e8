from fastapi import APIRouter

from parkdesk.api import billing, checkout, notices, notifications, search, sessions, slots
from parkdesk.api.health import health_check_routes


api_router = APIRouter()


api_router.include_router(search.search_router, tags=["Vehicle Search"])
api_router.include_router(checkout.checkout_router, tags=["Checkout"])
api_router.include_router(slots.slots_router, tags=["Slots"])
api_router.include_router(notifications.notifications_router, tags=["Duration Alerts"])
api_router.include_router(billing.billing_router, tags=["Billing"])
api_router.include_router(sessions.listings_router, tags=["Listings"])
api_router.include_router(notices.notices_router, tags=["Notices"])
api_router.include_router(health_check_routes, tags=["Container health"])
