import logging
from typing import List, Optional, Set

from parkdesk.schema.parking_schema import Session, VehicleSearchResult
from parkdesk.service.billing_preview import BillingPreviewCalculator
from parkdesk.service.notice_board import NoticeBoard
from parkdesk.service.parking_api import ParkingApiClient
from parkdesk.service.vehicle_locator import VehicleLocator
from parkdesk.utils.enum import CheckoutState
from parkdesk.utils.errors import ParkingApiError

logger = logging.getLogger(__name__)


class CheckoutOrchestrator:
    """
    Checkout page workflow for one selected session.

    NO_SELECTION -> SESSION_LOADED -> PREVIEW_READY -> CONFIRM_PENDING
    -> COMMITTING -> COMMITTED, with failures falling back to the last
    stable state (SESSION_LOADED for previews, CONFIRM_PENDING for commits).
    """

    def __init__(self, api: ParkingApiClient, notices: NoticeBoard,
                 calculator: Optional[BillingPreviewCalculator] = None,
                 locator: Optional[VehicleLocator] = None):
        self.api = api
        self.notices = notices
        self.calculator = calculator or BillingPreviewCalculator(api, notices)
        self.locator = locator

        self.active_sessions: List[Session] = []
        self.is_loading_sessions = False
        self.selected_session: Optional[Session] = None
        self.use_slab_pricing = False
        self.state = CheckoutState.NO_SELECTION
        self.confirmation: Optional[dict] = None
        self.last_outcome: Optional[CheckoutState] = None
        self.last_result: Optional[dict] = None
        self.last_error: Optional[str] = None
        self.last_failure: Optional[ParkingApiError] = None

        self._committing: Set[str] = set()
        self._preview_generation = 0

    @property
    def is_committing(self) -> bool:
        return self.selected_session is not None and self.selected_session.id in self._committing

    @property
    def can_confirm(self) -> bool:
        return self.state == CheckoutState.CONFIRM_PENDING and not self.is_committing

    async def load_active_sessions(self) -> bool:
        self.is_loading_sessions = True
        try:
            self.active_sessions = await self.api.get_active_sessions()
            logger.debug(f"Loaded {len(self.active_sessions)} active sessions")
            return True
        except ParkingApiError as e:
            logger.error(f"Error fetching active sessions: {e.message}")
            self.notices.error(e.message)
            return False
        finally:
            self.is_loading_sessions = False

    async def select_search_result(self, result: VehicleSearchResult) -> bool:
        if not self._selection_allowed():
            return False

        if not result.is_active:
            self._reject("This vehicle does not have an active parking session")
            return False

        session = VehicleLocator.find_active_session(result.number_plate, self.active_sessions)
        if session is None:
            self._reject("No active session found for this vehicle")
            return False

        await self._select(session)
        return True

    async def lookup(self, number_plate: str) -> bool:
        """Exact, case-insensitive match against the loaded active sessions."""
        if not self._selection_allowed():
            return False

        if not (number_plate or "").strip():
            self.notices.error("Please enter a vehicle number")
            return False

        session = VehicleLocator.find_active_session(number_plate, self.active_sessions)
        if session is None:
            self._reject("No active session found for this vehicle")
            return False

        await self._select(session)
        return True

    async def set_slab_pricing(self, enabled: bool) -> bool:
        if self.state in (CheckoutState.CONFIRM_PENDING, CheckoutState.COMMITTING):
            self.notices.warning("Close the checkout confirmation before changing the pricing mode")
            return False

        self.use_slab_pricing = enabled
        if self.selected_session is not None:
            await self.refresh_preview()
        return True

    async def refresh_preview(self) -> bool:
        session = self.selected_session
        if session is None:
            return False

        self._preview_generation += 1
        generation = self._preview_generation
        self.state = CheckoutState.SESSION_LOADED
        self.confirmation = None

        response = await self.calculator.calculate(session.id, self.use_slab_pricing)

        if generation != self._preview_generation:
            # a newer toggle or selection owns the state now
            return False

        self.state = CheckoutState.PREVIEW_READY if response is not None else CheckoutState.SESSION_LOADED
        return response is not None

    def open_confirm_dialog(self) -> bool:
        if self.state != CheckoutState.PREVIEW_READY or self.calculator.preview is None:
            self.notices.error("Billing preview is not ready yet")
            return False

        preview = self.calculator.preview
        self.confirmation = {
            "session_id": self.selected_session.id,
            "number_plate": self.selected_session.number_plate,
            "amount": preview.preview.amount,
            "amount_label": self.calculator.amount_label,
            "duration": self.calculator.duration_label,
            "billing_type": preview.preview.billing_type,
            "use_slab_pricing": self.use_slab_pricing,
        }
        self.state = CheckoutState.CONFIRM_PENDING
        return True

    def cancel_confirm_dialog(self) -> bool:
        if self.state != CheckoutState.CONFIRM_PENDING or self.is_committing:
            return False
        self.confirmation = None
        self.state = CheckoutState.PREVIEW_READY
        return True

    async def commit(self) -> Optional[dict]:
        session = self.selected_session
        self.last_error = None
        self.last_failure = None
        if self.state != CheckoutState.CONFIRM_PENDING or session is None:
            self.notices.error("Review the billing details before confirming checkout")
            return None
        if session.id in self._committing:
            self.notices.warning("Checkout is already being processed for this vehicle")
            return None

        self._committing.add(session.id)
        self.state = CheckoutState.COMMITTING
        try:
            try:
                result = await self.api.end_session(session.id, self.use_slab_pricing)
            except ParkingApiError as e:
                logger.error(f"Error processing checkout for session {session.id}: {e.message}")
                self.last_outcome = CheckoutState.FAILED
                self.last_error = e.message
                self.last_failure = e
                self.state = CheckoutState.CONFIRM_PENDING
                self.notices.error(e.message)
                return None

            logger.info(f"Session {session.id} ({session.number_plate}) checked out")
            self.last_outcome = CheckoutState.COMMITTED
            self.last_result = result
            self.notices.success("Vehicle checked out successfully!")
            self._clear_selection()
            if self.locator is not None:
                self.locator.reset()
            self.state = CheckoutState.COMMITTED

            # ending a session frees a slot we do not own; always re-fetch
            await self.load_active_sessions()
            return result if result is not None else {}
        finally:
            self._committing.discard(session.id)

    def snapshot(self) -> dict:
        session = self.selected_session
        return {
            "state": self.state.value,
            "last_outcome": self.last_outcome.value if self.last_outcome else None,
            "last_error": self.last_error,
            "use_slab_pricing": self.use_slab_pricing,
            "is_loading_sessions": self.is_loading_sessions,
            "active_session_count": len(self.active_sessions),
            "selected_session": session.model_dump(mode="json") if session else None,
            "billing_preview": self.calculator.snapshot(),
            "confirmation": self.confirmation,
            "can_confirm": self.can_confirm,
            "is_committing": self.is_committing,
        }

    def _selection_allowed(self) -> bool:
        # the marker is held until the post-checkout refresh has landed
        if self.state == CheckoutState.COMMITTING or self._committing:
            self.notices.warning("Wait for the current checkout to finish")
            return False
        return True

    async def _select(self, session: Session) -> None:
        logger.debug(f"Selected session {session.id} for {session.number_plate}")
        self.selected_session = session
        self.confirmation = None
        self.state = CheckoutState.SESSION_LOADED
        await self.refresh_preview()

    def _reject(self, message: str) -> None:
        logger.warning(f"Checkout selection rejected: {message}")
        self.notices.error(message)
        self._clear_selection()
        self.state = CheckoutState.NO_SELECTION

    def _clear_selection(self) -> None:
        self._preview_generation += 1
        self.selected_session = None
        self.confirmation = None
        self.calculator.reset()
