import logging
from typing import Dict, List, Optional, Set

from parkdesk.schema.filter_schema import SlotFilter
from parkdesk.schema.form_schema import SlotAssignmentForm
from parkdesk.schema.parking_schema import Slot, SlotStatistics
from parkdesk.service.notice_board import NoticeBoard
from parkdesk.service.parking_api import ParkingApiClient
from parkdesk.utils.enum import BillingType, DialogMode, SlotStatus, VehicleType
from parkdesk.utils.errors import ParkingApiError

logger = logging.getLogger(__name__)


class SlotDialog:
    """Open assign/override dialog for one slot."""

    def __init__(self, slot: Slot, mode: DialogMode, form: SlotAssignmentForm,
                 displaced_plate: Optional[str] = None, displaced_type: Optional[VehicleType] = None):
        self.slot = slot
        self.mode = mode
        self.form = form
        self.displaced_plate = displaced_plate
        self.displaced_type = displaced_type
        self.errors: Dict[str, str] = {}
        self.error: Optional[str] = None
        self.failure: Optional[ParkingApiError] = None

    def reset_outcome(self) -> None:
        self.errors = {}
        self.error = None
        self.failure = None


class SlotAssignmentOrchestrator:
    """
    Slot table actions: manual assignment, override and maintenance toggle.

    A per-slot in-flight marker stops a second submission for the same slot
    while the first is outstanding; other slots stay usable. Every
    successful mutation re-fetches the whole slot list.
    """

    def __init__(self, api: ParkingApiClient, notices: NoticeBoard):
        self.api = api
        self.notices = notices

        self.slots: List[Slot] = []
        self.filters = SlotFilter()
        self.statistics: Optional[SlotStatistics] = None
        self.is_loading = False
        self.dialogs: Dict[str, SlotDialog] = {}

        self._in_flight: Set[str] = set()

    @property
    def visible_slots(self) -> List[Slot]:
        return [slot for slot in self.slots if self.filters.matches(slot)]

    def is_submitting(self, slot_id: str) -> bool:
        return slot_id in self._in_flight

    def get_slot(self, slot_id: str) -> Optional[Slot]:
        return next((slot for slot in self.slots if slot.id == slot_id), None)

    async def load_slots(self, filters: Optional[SlotFilter] = None) -> bool:
        if filters is not None:
            self.filters = filters

        self.is_loading = True
        try:
            self.slots = await self.api.get_slots()
            logger.debug(f"Loaded {len(self.slots)} slots")
            return True
        except ParkingApiError as e:
            logger.error(f"Error fetching slots: {e.message}")
            self.notices.error(e.message)
            return False
        finally:
            self.is_loading = False

    async def load_statistics(self) -> Optional[SlotStatistics]:
        try:
            self.statistics = await self.api.get_slot_statistics()
        except ParkingApiError as e:
            logger.error(f"Error fetching slot statistics: {e.message}")
            self.notices.error(e.message)
        return self.statistics

    def relocation_candidates(self, dialog: SlotDialog) -> List[Slot]:
        if dialog.mode != DialogMode.OVERRIDE:
            return []
        return [
            slot for slot in self.slots
            if slot.id != dialog.slot.id
            and slot.status == SlotStatus.AVAILABLE
            and slot.active_session is None
            and slot.type == dialog.displaced_type
        ]

    def open_dialog(self, slot_id: str) -> Optional[SlotDialog]:
        if slot_id in self.dialogs:
            return self.dialogs[slot_id]

        slot = self.get_slot(slot_id)
        if slot is None:
            self.notices.error("Slot not found, refresh the slot list")
            return None

        session = slot.active_session
        if slot.status == SlotStatus.MAINTENANCE:
            self.notices.error(f"Slot {slot.location} is under maintenance")
            return None

        if slot.status == SlotStatus.AVAILABLE:
            if session is not None:
                self.notices.error(f"Slot {slot.location} is still occupied, refresh the slot list")
                return None
            dialog = SlotDialog(slot, DialogMode.ASSIGN, SlotAssignmentForm(type=slot.type))
        else:
            if session is None or session.vehicle is None:
                self.notices.error(f"Slot {slot.location} has no active session to override, refresh the slot list")
                return None
            form = SlotAssignmentForm(
                number_plate=session.vehicle.number_plate,
                type=session.vehicle.type,
                staff_id=session.staff_id or "",
                billing_type=session.billing_type or BillingType.HOURLY,
            )
            dialog = SlotDialog(slot, DialogMode.OVERRIDE, form,
                                displaced_plate=session.vehicle.number_plate,
                                displaced_type=session.vehicle.type)

        self.dialogs[slot_id] = dialog
        logger.debug(f"Opened {dialog.mode.value} dialog for slot {slot.location}")
        return dialog

    def close_dialog(self, slot_id: str) -> bool:
        if slot_id in self._in_flight:
            return False
        return self.dialogs.pop(slot_id, None) is not None

    def update_form(self, slot_id: str, **changes) -> Optional[SlotDialog]:
        dialog = self.dialogs.get(slot_id)
        if dialog is None:
            self.notices.error("Open the slot dialog first")
            return None
        if slot_id in self._in_flight:
            self.notices.warning("Wait for the current request to finish")
            return dialog

        changes = {field: value for field, value in changes.items() if value is not None}
        dialog.form = SlotAssignmentForm.model_validate({**dialog.form.model_dump(), **changes})
        for field in changes:
            dialog.errors.pop(field, None)
        return dialog

    async def submit(self, slot_id: str) -> bool:
        dialog = self.dialogs.get(slot_id)
        if dialog is None:
            self.notices.error("Open the slot dialog first")
            return False
        if slot_id in self._in_flight:
            self.notices.warning(f"A request for slot {dialog.slot.location} is already in progress")
            return False

        # each attempt reports only its own outcome
        dialog.reset_outcome()
        candidates = self.relocation_candidates(dialog)
        if dialog.mode == DialogMode.OVERRIDE and not candidates:
            message = (f"No available {dialog.displaced_type.value} slot to move "
                       f"{dialog.displaced_plate} to")
            dialog.errors["relocate_to_slot_id"] = message
            self.notices.error(message)
            return False

        errors = dialog.form.field_errors(dialog.mode, [slot.id for slot in candidates])
        if errors:
            dialog.errors = errors
            self.notices.error("Please fix the highlighted fields")
            return False

        self._in_flight.add(slot_id)
        try:
            try:
                if dialog.mode == DialogMode.ASSIGN:
                    await self.api.create_vehicle_entry(dialog.form.to_entry())
                else:
                    await self.api.override_slot(slot_id, dialog.form.to_override())
            except ParkingApiError as e:
                logger.error(f"Error submitting {dialog.mode.value} for slot {dialog.slot.location}: {e.message}")
                dialog.error = e.message
                dialog.failure = e
                self.notices.error(e.message)
                return False

            if dialog.mode == DialogMode.ASSIGN:
                self.notices.success(f"Vehicle {dialog.form.number_plate} parked")
            else:
                self.notices.success(f"Slot {dialog.slot.location} reassigned to {dialog.form.number_plate}")
            self.dialogs.pop(slot_id, None)

            # either mode can change slots other than the one clicked
            await self.load_slots()
            return True
        finally:
            self._in_flight.discard(slot_id)

    async def toggle_maintenance(self, slot_id: str) -> bool:
        slot = self.get_slot(slot_id)
        if slot is None:
            self.notices.error("Slot not found, refresh the slot list")
            return False
        if slot_id in self._in_flight:
            self.notices.warning(f"A request for slot {slot.location} is already in progress")
            return False
        if slot.status == SlotStatus.OCCUPIED or slot.active_session is not None:
            self.notices.error(f"Slot {slot.location} is occupied and cannot be put under maintenance")
            return False

        new_status = SlotStatus.MAINTENANCE if slot.status == SlotStatus.AVAILABLE else SlotStatus.AVAILABLE
        self._in_flight.add(slot_id)
        try:
            try:
                await self.api.update_slot_status(slot_id, new_status)
            except ParkingApiError as e:
                logger.error(f"Error updating slot {slot.location}: {e.message}")
                self.notices.error(e.message)
                return False

            self.notices.success(f"Slot {slot.location} is now {new_status.value.lower()}")
            await self.load_slots()
            return True
        finally:
            self._in_flight.discard(slot_id)

    def dialog_snapshot(self, slot_id: str) -> Optional[dict]:
        dialog = self.dialogs.get(slot_id)
        if dialog is None:
            return None
        candidates = self.relocation_candidates(dialog)
        blocked_reason = None
        if dialog.mode == DialogMode.OVERRIDE and not candidates:
            blocked_reason = f"No available {dialog.displaced_type.value} slot to move {dialog.displaced_plate} to"
        return {
            "slot_id": dialog.slot.id,
            "location": dialog.slot.location,
            "mode": dialog.mode.value,
            "form": dialog.form.model_dump(mode="json"),
            "errors": dict(dialog.errors),
            "error": dialog.error,
            "displaced_plate": dialog.displaced_plate,
            "relocation_candidates": [{"id": slot.id, "location": slot.location} for slot in candidates],
            "blocked_reason": blocked_reason,
            "is_submitting": self.is_submitting(slot_id),
        }

    def snapshot(self) -> dict:
        return {
            "is_loading": self.is_loading,
            "filters": self.filters.model_dump(mode="json", exclude_none=True),
            "slots": [
                {
                    **slot.model_dump(mode="json", exclude={"sessions"}),
                    "occupied_by": slot.occupied_by,
                    "is_submitting": self.is_submitting(slot.id),
                }
                for slot in self.visible_slots
            ],
            "statistics": self.statistics.model_dump(mode="json") if self.statistics else None,
            "open_dialogs": sorted(self.dialogs),
        }
