import logging
from typing import Optional, Tuple

from parkdesk.schema.billing_schema import BillingPreviewResponse
from parkdesk.service.notice_board import NoticeBoard
from parkdesk.service.parking_api import ParkingApiClient
from parkdesk.utils.common import DateTimeUtils, format_currency, format_duration
from parkdesk.utils.errors import ParkingApiError

logger = logging.getLogger(__name__)


class BillingPreviewCalculator:
    """
    Client proxy for the billing preview endpoint.

    The API does the pricing. This class only keeps the displayed quote in
    step with the selected session and pricing mode: each request is keyed
    by (session id, slab flag, generation) and its answer is applied only
    if that key is still the latest one when it arrives.
    """

    def __init__(self, api: ParkingApiClient, notices: NoticeBoard):
        self.api = api
        self.notices = notices

        self.preview: Optional[BillingPreviewResponse] = None
        self.preview_key: Optional[Tuple[str, bool]] = None
        self.is_calculating = False
        self.error: Optional[str] = None

        self._generation = 0
        self._latest: Optional[Tuple[str, bool, int]] = None

    async def calculate(self, session_id: str, use_slab_pricing: bool) -> Optional[BillingPreviewResponse]:
        """Returns the preview when it was applied, None when it failed or was superseded."""
        self._generation += 1
        key = (session_id, use_slab_pricing, self._generation)
        self._latest = key

        # a quote for another session or mode must not stay on screen
        self.preview = None
        self.preview_key = None
        self.error = None
        self.is_calculating = True

        try:
            response = await self.api.calculate_billing_preview(session_id, use_slab_pricing)
        except ParkingApiError as e:
            if self._latest != key:
                logger.debug(f"Ignoring failed preview for superseded request {key}: {e.message}")
                return None
            logger.error(f"Error loading billing preview for session {session_id}: {e.message}")
            self.is_calculating = False
            self.error = e.message
            self.notices.error(e.message)
            return None

        if self._latest != key:
            logger.debug(f"Discarding preview for superseded request {key}")
            return None

        self.preview = response
        self.preview_key = (session_id, use_slab_pricing)
        self.is_calculating = False
        logger.info(f"Billing preview for session {session_id} (slab: {use_slab_pricing}): "
                    f"{response.preview.amount} for {response.preview.duration_hours:.2f} hours")
        return response

    def reset(self) -> None:
        self._generation += 1
        self._latest = None
        self.preview = None
        self.preview_key = None
        self.is_calculating = False
        self.error = None

    @property
    def duration_label(self) -> Optional[str]:
        if self.preview is None:
            return None
        return format_duration(DateTimeUtils.elapsed(self.preview.entry_time, self.preview.current_time))

    @property
    def amount_label(self) -> Optional[str]:
        if self.preview is None:
            return None
        return format_currency(self.preview.preview.amount)

    def snapshot(self) -> dict:
        return {
            "is_calculating": self.is_calculating,
            "error": self.error,
            "preview": self.preview.model_dump(mode="json") if self.preview else None,
            "duration": self.duration_label,
            "amount": self.amount_label,
        }
