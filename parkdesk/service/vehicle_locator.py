import asyncio
import logging
from typing import Iterable, List, Optional, Set

from parkdesk.config import settings
from parkdesk.schema.parking_schema import Session, VehicleSearchResult
from parkdesk.service.notice_board import NoticeBoard
from parkdesk.service.parking_api import ParkingApiClient
from parkdesk.utils.enum import NavigationKey
from parkdesk.utils.errors import ParkingApiError

logger = logging.getLogger(__name__)


class VehicleLocator:
    """
    Incremental plate search behind the vehicle search box.

    Keystrokes are debounced; every query gets a generation number and a
    response is applied only while its generation is still the latest one.
    A superseded request is left to finish and its answer is dropped.
    """

    def __init__(self, api: ParkingApiClient, notices: NoticeBoard,
                 include_active: bool = True,
                 debounce_ms: int = settings.SEARCH_DEBOUNCE_MS,
                 min_query_length: int = settings.SEARCH_MIN_QUERY_LENGTH,
                 limit: int = settings.SEARCH_RESULT_LIMIT):
        self.api = api
        self.notices = notices
        self.include_active = include_active
        self.debounce_ms = debounce_ms
        self.min_query_length = min_query_length
        self.limit = limit

        self.query = ""
        self.results: List[VehicleSearchResult] = []
        self.is_open = False
        self.is_loading = False
        self.highlighted_index = -1

        self._generation = 0
        self._timer: Optional[asyncio.Task] = None
        self._tasks: Set[asyncio.Task] = set()

    def set_query(self, text: str) -> None:
        query = (text or "").upper()
        self.query = query
        self._supersede()

        if len(query.strip()) < self.min_query_length:
            self.results = []
            self.is_loading = False
            self.highlighted_index = -1
            return

        self.is_open = True
        self._schedule(query)

    def focus(self) -> None:
        if len(self.query.strip()) >= self.min_query_length and not self.is_open:
            self.is_open = True
            self._supersede()
            self._schedule(self.query)

    def handle_key(self, key: NavigationKey) -> Optional[VehicleSearchResult]:
        """Keyboard navigation over the suggestion list; Enter returns the committed result."""
        if not self.is_open:
            return None

        if key == NavigationKey.ARROW_DOWN:
            self.highlighted_index = min(self.highlighted_index + 1, len(self.results) - 1)
        elif key == NavigationKey.ARROW_UP:
            self.highlighted_index = max(self.highlighted_index - 1, -1)
        elif key == NavigationKey.ENTER:
            if 0 <= self.highlighted_index < len(self.results):
                return self.select(self.results[self.highlighted_index])
        elif key == NavigationKey.ESCAPE:
            self.close_list()
        return None

    def select(self, result: VehicleSearchResult) -> VehicleSearchResult:
        self.query = result.number_plate
        self.close_list()
        return result

    def close_list(self) -> None:
        self.is_open = False
        self.highlighted_index = -1
        self.results = []
        self.is_loading = False
        self._supersede()

    def reset(self) -> None:
        self.query = ""
        self.close_list()

    async def flush(self) -> None:
        """Wait for the pending debounce window and any requests still in flight."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def close(self) -> None:
        for task in list(self._tasks):
            task.cancel()
        await self.flush()

    @staticmethod
    def find_active_session(number_plate: str, sessions: Iterable[Session]) -> Optional[Session]:
        plate = (number_plate or "").strip().lower()
        if not plate:
            return None
        return next(
            (session for session in sessions
             if session.is_active and session.number_plate and session.number_plate.lower() == plate),
            None,
        )

    def snapshot(self) -> dict:
        return {
            "query": self.query,
            "is_open": self.is_open,
            "is_loading": self.is_loading,
            "highlighted_index": self.highlighted_index,
            "results": [result.model_dump(mode="json") for result in self.results],
        }

    def _supersede(self) -> None:
        self._generation += 1
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()
        self._timer = None

    def _schedule(self, query: str) -> None:
        task = asyncio.create_task(self._search_after_delay(self._generation, query))
        self._timer = task
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _search_after_delay(self, generation: int, query: str) -> None:
        await asyncio.sleep(self.debounce_ms / 1000)
        if self._timer is asyncio.current_task():
            # past the debounce window: a newer keystroke no longer cancels this request
            self._timer = None
        if generation != self._generation:
            return
        await self._search(generation, query)

    async def _search(self, generation: int, query: str) -> None:
        self.is_loading = True
        try:
            results = await self.api.search_vehicles(query, self.limit, self.include_active)
        except ParkingApiError as e:
            if generation != self._generation:
                logger.debug(f"Ignoring failure of superseded search '{query}': {e.message}")
                return
            logger.error(f"Error searching vehicles for '{query}': {e.message}")
            self.results = []
            self.is_loading = False
            self.notices.error(e.message)
            return

        if generation != self._generation:
            logger.debug(f"Discarding results of superseded search '{query}'")
            return

        self.results = results
        self.highlighted_index = -1
        self.is_loading = False
        logger.debug(f"Search '{query}' returned {len(results)} vehicles")
