import logging

from fastapi import APIRouter, Depends

from parkdesk.dependencies.deps import console_response, get_console
from parkdesk.schema.form_schema import PlateLookup, PricingToggle
from parkdesk.service.console import Console
from parkdesk.utils.errors import ConsoleStateError

logger = logging.getLogger(__name__)

checkout_router = APIRouter()


@checkout_router.get("/v1/checkout")
async def get_checkout(console: Console = Depends(get_console)):
    return console_response(console, True, "Checkout state", console.checkout.snapshot())


@checkout_router.post("/v1/checkout/active-sessions/refresh")
async def refresh_active_sessions(console: Console = Depends(get_console)):
    ok = await console.checkout.load_active_sessions()
    return console_response(console, ok, "Active sessions loaded", console.checkout.snapshot())


@checkout_router.post("/v1/checkout/lookup")
async def lookup(plate_lookup: PlateLookup, console: Console = Depends(get_console)):
    """
    Select the active session of an exactly matching plate.
    """
    ok = await console.checkout.lookup(plate_lookup.plate)
    return console_response(console, ok, "Session selected", console.checkout.snapshot())


@checkout_router.put("/v1/checkout/pricing")
async def set_pricing(pricing_toggle: PricingToggle, console: Console = Depends(get_console)):
    ok = await console.checkout.set_slab_pricing(pricing_toggle.use_slab_pricing)
    return console_response(console, ok, "Pricing mode updated", console.checkout.snapshot())


@checkout_router.post("/v1/checkout/preview/refresh")
async def refresh_preview(console: Console = Depends(get_console)):
    if console.checkout.selected_session is None:
        raise ConsoleStateError("Select a vehicle first")
    ok = await console.checkout.refresh_preview()
    return console_response(console, ok, "Billing preview updated", console.checkout.snapshot())


@checkout_router.post("/v1/checkout/confirmation")
async def open_confirmation(console: Console = Depends(get_console)):
    if not console.checkout.open_confirm_dialog():
        raise ConsoleStateError("Billing preview is not ready yet")
    return console_response(console, True, "Confirm checkout", console.checkout.snapshot())


@checkout_router.delete("/v1/checkout/confirmation")
async def cancel_confirmation(console: Console = Depends(get_console)):
    if not console.checkout.cancel_confirm_dialog():
        raise ConsoleStateError("No checkout confirmation to cancel")
    return console_response(console, True, "Checkout cancelled", console.checkout.snapshot())


@checkout_router.post("/v1/checkout/commit")
async def commit(console: Console = Depends(get_console)):
    checkout = console.checkout
    if not checkout.can_confirm:
        raise ConsoleStateError("Review the billing details before confirming checkout")

    result = await checkout.commit()
    if result is None:
        if checkout.last_failure is not None:
            raise checkout.last_failure
        raise ConsoleStateError("Checkout is already being processed for this vehicle")
    return console_response(console, True, "Vehicle checked out successfully!",
                            {"result": result, "checkout": checkout.snapshot()})
