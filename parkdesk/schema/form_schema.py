import re
from typing import Dict, Iterable, Optional

from pydantic import BaseModel, ConfigDict, field_validator

from parkdesk.schema.common_schema import ApiModel
from parkdesk.schema.parking_schema import canonical_plate
from parkdesk.utils.enum import BillingType, DialogMode, NavigationKey, VehicleType

PLATE_PATTERN = re.compile(r"^[A-Z0-9\s-]+$")
PLATE_MAX_LENGTH = 20


def plate_error(number_plate: Optional[str]) -> Optional[str]:
    if not number_plate:
        return "Number plate is required"
    if len(number_plate) > PLATE_MAX_LENGTH:
        return f"Number plate must be less than {PLATE_MAX_LENGTH} characters"
    if not PLATE_PATTERN.match(number_plate):
        return "Number plate must contain only letters, numbers, spaces, and hyphens"
    return None


class VehicleEntry(ApiModel):
    number_plate: str
    type: VehicleType
    staff_id: str
    billing_type: BillingType = BillingType.HOURLY


class SlotOverrideRequest(VehicleEntry):
    relocate_to_slot_id: str


class SlotAssignmentForm(BaseModel):
    """Editable field values of the slot dialog."""

    number_plate: str = ""
    type: Optional[VehicleType] = None
    staff_id: str = ""
    billing_type: BillingType = BillingType.HOURLY
    relocate_to_slot_id: Optional[str] = None

    @field_validator("number_plate")
    @classmethod
    def canonicalize_plate(cls, value):
        return canonical_plate(value) or ""

    def field_errors(self, mode: DialogMode, relocation_candidates: Iterable[str] = ()) -> Dict[str, str]:
        errors = {}

        reason = plate_error(self.number_plate)
        if reason:
            errors["number_plate"] = reason
        if self.type is None:
            errors["type"] = "Please select a valid vehicle type"
        if not self.staff_id.strip():
            errors["staff_id"] = "Staff member is required"

        if mode == DialogMode.OVERRIDE:
            candidates = set(relocation_candidates)
            if not self.relocate_to_slot_id:
                errors["relocate_to_slot_id"] = "Choose a slot for the vehicle being moved"
            elif self.relocate_to_slot_id not in candidates:
                errors["relocate_to_slot_id"] = "Selected slot is not available for the vehicle being moved"
        return errors

    def to_entry(self) -> VehicleEntry:
        return VehicleEntry(
            number_plate=self.number_plate,
            type=self.type,
            staff_id=self.staff_id.strip(),
            billing_type=self.billing_type,
        )

    def to_override(self) -> SlotOverrideRequest:
        return SlotOverrideRequest(
            **self.to_entry().model_dump(),
            relocate_to_slot_id=self.relocate_to_slot_id,
        )


class SlotFormUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    number_plate: Optional[str] = None
    type: Optional[VehicleType] = None
    staff_id: Optional[str] = None
    billing_type: Optional[BillingType] = None
    relocate_to_slot_id: Optional[str] = None


class SearchInput(BaseModel):
    query: str = ""


class KeyPress(BaseModel):
    key: NavigationKey


class PlateLookup(BaseModel):
    plate: str = ""


class ResultSelection(BaseModel):
    index: int


class PricingToggle(BaseModel):
    use_slab_pricing: bool


class PaymentStatusUpdate(BaseModel):
    is_paid: bool
