import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel, TypeAdapter, ValidationError

from parkdesk.config import settings
from parkdesk.utils.errors import NetworkError, ParkingApiError

logger = logging.getLogger(__name__)

Model = TypeVar("Model", bound=BaseModel)


class ApiHelper:
    def __init__(
        self,
        base_url: str,
        headers: Optional[Dict[str, Any]] = None,
        timeout: float = settings.REQUEST_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        base_headers = {"Content-Type": "application/json"}

        self.base_url = base_url.rstrip("/")
        self.headers = {**(headers or {}), **base_headers}
        self.timeout = timeout
        self.client = httpx.AsyncClient(
            base_url=f"{self.base_url}/",
            headers=self.headers,
            timeout=timeout,
            transport=transport,
        )

    async def aclose(self):
        await self.client.aclose()

    @staticmethod
    def error_message(response: httpx.Response, action: str) -> str:
        """Server-provided `error` or `message` text, else a generic fallback."""
        try:
            body = response.json()
        except ValueError:
            body = {}

        if isinstance(body, dict):
            message = body.get("error") or body.get("message")
            if message:
                return str(message)
        return f"Failed to {action}: {response.reason_phrase or response.status_code}"

    @staticmethod
    def unwrap(body: Any) -> Any:
        # {"success": true, "data": [...]} envelopes carry the payload under "data"
        if isinstance(body, dict) and "success" in body and "data" in body:
            return body["data"]
        return body

    async def request(
        self,
        method: str,
        endpoint: str,
        action: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Any] = None,
        unwrap: bool = True,
    ) -> Any:

        try:
            logger.debug(f"initiating api request method:{method}, endpoint:{endpoint}, params:{params}, json:{json}")
            response = await self.client.request(
                method=method.upper(),
                url=endpoint,
                params=params,
                json=json,
            )
        except httpx.TimeoutException as e:
            logger.error(f"timed out while trying to {action}: {endpoint}, error: {e}")
            raise NetworkError(f"Failed to {action}: request timed out") from e
        except httpx.RequestError as e:
            logger.error(f"network error while trying to {action}: {endpoint}, error: {e}")
            raise NetworkError(f"Failed to {action}: {e}") from e

        if response.is_error:
            message = self.error_message(response, action)
            logger.error(f"api request failed: {endpoint}, status: {response.status_code}, error: {message}")
            raise ParkingApiError(message, status_code=response.status_code)

        logger.debug(f"got response from endpoint: {endpoint}, status: {response.status_code}")
        if not response.content:
            return None

        try:
            body = response.json()
        except ValueError as e:
            raise ParkingApiError(f"Failed to {action}: malformed response", response.status_code) from e
        return self.unwrap(body) if unwrap else body

    @staticmethod
    def parse(model: Type[Model], data: Any, action: str) -> Model:
        try:
            return model.model_validate(data)
        except ValidationError as e:
            logger.error(f"unexpected response shape while trying to {action}: {e}")
            raise ParkingApiError(f"Failed to {action}: malformed response") from e

    @staticmethod
    def parse_list(model: Type[Model], data: Any, action: str) -> List[Model]:
        try:
            return TypeAdapter(List[model]).validate_python(data or [])
        except ValidationError as e:
            logger.error(f"unexpected response shape while trying to {action}: {e}")
            raise ParkingApiError(f"Failed to {action}: malformed response") from e

    async def get(self, endpoint: str, action: str, params: Optional[Dict[str, Any]] = None, unwrap: bool = True):
        return await self.request("GET", endpoint, action, params=params, unwrap=unwrap)

    async def post(self, endpoint: str, action: str, json: Optional[Any] = None):
        return await self.request("POST", endpoint, action, json=json)

    async def patch(self, endpoint: str, action: str, json: Optional[Any] = None):
        return await self.request("PATCH", endpoint, action, json=json)

    @asynccontextmanager
    async def stream(self, endpoint: str, action: str) -> AsyncIterator[httpx.Response]:
        """
        Long-lived GET with no read timeout. The response is closed when the
        context exits, including on cancellation.
        """
        timeout = httpx.Timeout(self.timeout, connect=settings.STREAM_CONNECT_TIMEOUT, read=None)
        try:
            async with self.client.stream(
                "GET", endpoint, headers={"Accept": "text/event-stream"}, timeout=timeout
            ) as response:
                if response.is_error:
                    await response.aread()
                    raise ParkingApiError(self.error_message(response, action), status_code=response.status_code)
                yield response
        except httpx.TransportError as e:
            raise NetworkError(f"Failed to {action}: {e}") from e
