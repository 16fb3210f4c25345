"""
Subscription lookup by customer name.

Runs on every edit of the name field. Several lookups may be in flight at
once; each call takes a generation number and only the response of the
latest generation is applied, so a slow stale response cannot overwrite
a newer one.
"""

import logging
from typing import List

from ..sdk.gateway import GatewayError, RemoteGateway
from .models import Subscription
from .notifications import Notifier

logger = logging.getLogger(__name__)

LOOKUP_FAILED_MESSAGE = "Failed to fetch subscriptions"


class SubscriptionLookup:
    """Holds the subscribed set for the name currently typed."""

    def __init__(self, gateway: RemoteGateway, notifier: Notifier):
        self.gateway = gateway
        self.notifier = notifier
        self._subscriptions: List[Subscription] = []
        self._generation = 0

    @property
    def subscriptions(self) -> List[Subscription]:
        return list(self._subscriptions)

    @property
    def generation(self) -> int:
        return self._generation

    async def refresh(self, customer_name: str) -> List[Subscription]:
        """Refresh the subscribed set for ``customer_name``.
        
        A blank name clears the set before any await and makes no request.
        On failure the user is notified and the previous set is kept.
        
        Args:
            customer_name: Name as typed; sent untrimmed
            
        Returns:
            The subscribed set after this call
        """
        self._generation += 1
        generation = self._generation

        if not customer_name.strip():
            self._subscriptions = []
            return self.subscriptions

        try:
            payload = await self.gateway.list_subscriptions(customer_name)
            if not isinstance(payload, list):
                raise ValueError(f"Expected a list of subscriptions, got {type(payload).__name__}")
            subscriptions = [Subscription.from_api(item) for item in payload]
        except GatewayError as e:
            logger.error("Error fetching subscriptions for %r: %s", customer_name, e)
            self.notifier.error(e.server_message or LOOKUP_FAILED_MESSAGE)
            return self.subscriptions
        except ValueError as e:
            logger.error("Malformed subscriptions for %r: %s", customer_name, e)
            self.notifier.error(LOOKUP_FAILED_MESSAGE)
            return self.subscriptions

        if generation != self._generation:
            logger.debug(
                "Dropping stale lookup for %r (generation %d, latest %d)",
                customer_name, generation, self._generation
            )
            return self.subscriptions

        self._subscriptions = subscriptions
        return self.subscriptions
