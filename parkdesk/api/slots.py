import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Query

from parkdesk.dependencies.deps import console_response, get_console
from parkdesk.schema.filter_schema import SlotFilter
from parkdesk.schema.form_schema import SlotFormUpdate
from parkdesk.service.console import Console
from parkdesk.utils.errors import ConsoleStateError, FormValidationError

logger = logging.getLogger(__name__)

slots_router = APIRouter()


@slots_router.get("/v1/slots")
async def get_slots(filters: Annotated[SlotFilter, Query()], console: Console = Depends(get_console)):
    ok = await console.slots.load_slots(filters)
    return console_response(console, ok, "Slots loaded", console.slots.snapshot())


@slots_router.get("/v1/slots/statistics")
async def get_slot_statistics(console: Console = Depends(get_console)):
    statistics = await console.slots.load_statistics()
    return console_response(console, statistics is not None, "Slot statistics",
                            statistics.model_dump(mode="json") if statistics else None)


@slots_router.post("/v1/slots/{slot_id}/dialog")
async def open_dialog(slot_id: str, console: Console = Depends(get_console)):
    if console.slots.open_dialog(slot_id) is None:
        raise ConsoleStateError(console.notices.notices[-1].message)
    return console_response(console, True, "Dialog opened", console.slots.dialog_snapshot(slot_id))


@slots_router.patch("/v1/slots/{slot_id}/dialog")
async def update_dialog(slot_id: str, form_update: SlotFormUpdate, console: Console = Depends(get_console)):
    if slot_id not in console.slots.dialogs:
        raise ConsoleStateError("Open the slot dialog first")
    console.slots.update_form(slot_id, **form_update.model_dump(exclude_unset=True))
    return console_response(console, True, "Dialog updated", console.slots.dialog_snapshot(slot_id))


@slots_router.delete("/v1/slots/{slot_id}/dialog")
async def close_dialog(slot_id: str, console: Console = Depends(get_console)):
    if not console.slots.close_dialog(slot_id):
        raise ConsoleStateError("No dialog to close for this slot")
    return console_response(console, True, "Dialog closed")


@slots_router.post("/v1/slots/{slot_id}/dialog/submit")
async def submit_dialog(slot_id: str, console: Console = Depends(get_console)):
    slots = console.slots
    dialog = slots.dialogs.get(slot_id)
    if dialog is None:
        raise ConsoleStateError("Open the slot dialog first")
    if slots.is_submitting(slot_id):
        raise ConsoleStateError(f"A request for slot {dialog.slot.location} is already in progress")

    if await slots.submit(slot_id):
        return console_response(console, True, "Slot updated", slots.snapshot())
    if dialog.errors:
        raise FormValidationError(dialog.errors)
    if dialog.failure is not None:
        raise dialog.failure
    raise ConsoleStateError(console.notices.notices[-1].message)


@slots_router.post("/v1/slots/{slot_id}/maintenance")
async def toggle_maintenance(slot_id: str, console: Console = Depends(get_console)):
    ok = await console.slots.toggle_maintenance(slot_id)
    return console_response(console, ok, "Slot status updated", console.slots.snapshot())
