"""
Remote gateway client.

Thin async wrapper over httpx for the customer subscription endpoints.
Injects the stored bearer token and drops it again on 401 responses.
"""

import logging
from typing import Any, Callable, Dict, List, Optional

import httpx

from ..storage.backends import KeyValueStorage

logger = logging.getLogger(__name__)

TOKEN_KEY = "jwt_token"
USER_DATA_KEY = "user_data"


class GatewayError(Exception):
    """Raised when a gateway call fails at the transport or server level."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        server_message: Optional[str] = None
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.server_message = server_message


class RemoteGateway:
    """Async client for the subscription backend.
    
    Every failure surfaces as ``GatewayError``. Nothing is retried.
    """

    def __init__(
        self,
        base_url: str,
        storage: KeyValueStorage,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        on_unauthorized: Optional[Callable[[], None]] = None
    ):
        """Initialize the gateway.
        
        Args:
            base_url: API root, e.g. https://example.com/api
            storage: Store holding the bearer token
            timeout: Request timeout in seconds
            transport: Optional httpx transport (for tests)
            on_unauthorized: Called after a 401 clears the stored session
            
        Raises:
            ValueError: If base_url is missing/empty
        """
        if not base_url or not base_url.strip():
            raise ValueError("base_url is required and cannot be empty")

        self.base_url = base_url.rstrip("/")
        self.storage = storage
        self.timeout = timeout
        self.transport = transport
        self.on_unauthorized = on_unauthorized

    async def list_publications(self) -> List[Dict[str, Any]]:
        """GET /customer/publications."""
        return await self._request("GET", "/customer/publications") or []

    async def list_subscriptions(self, customer_name: str) -> List[Dict[str, Any]]:
        """GET /customer/subscriptions for a customer name, sent as typed."""
        return await self._request(
            "GET",
            "/customer/subscriptions",
            params={"customerName": customer_name}
        ) or []

    async def subscribe(self, customer_name: str, publication_id: str, amount: float) -> Any:
        """POST /customer/subscriptions/subscribe."""
        return await self._request(
            "POST",
            "/customer/subscriptions/subscribe",
            json={
                "customerName": customer_name,
                "publicationId": publication_id,
                "amount": amount,
            }
        )

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        token = self.storage.get_item(TOKEN_KEY)
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        logger.debug("%s %s%s", method, self.base_url, path)
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self.transport
            ) as client:
                response = await client.request(method, path, headers=self._headers(), **kwargs)
        except httpx.HTTPError as e:
            logger.warning("%s %s failed: %s", method, path, e)
            raise GatewayError(str(e) or e.__class__.__name__) from e

        if response.status_code == 401:
            self._handle_unauthorized()

        if response.is_error:
            server_message = _server_message(response)
            message = server_message or f"HTTP {response.status_code} {response.reason_phrase}".strip()
            logger.warning("%s %s returned %d: %s", method, path, response.status_code, message)
            raise GatewayError(
                message,
                status_code=response.status_code,
                server_message=server_message
            )

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise GatewayError(f"Invalid JSON from {path}", status_code=response.status_code) from e

    def _handle_unauthorized(self) -> None:
        self.storage.remove_item(TOKEN_KEY)
        self.storage.remove_item(USER_DATA_KEY)
        logger.warning("Unauthorized response; stored session cleared")
        if self.on_unauthorized is not None:
            self.on_unauthorized()


def _server_message(response: httpx.Response) -> Optional[str]:
    """The ``message`` field of a JSON error body, if any."""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return None
