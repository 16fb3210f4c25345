"""
Subscription submission.

Submits a subscription to the server and, only after the server accepts
it, records a paid entry in the local ledger.

State per attempt:
    IDLE -> SUBMITTING -> COMMITTED (terminal until reset)
                       -> FAILED -> IDLE
"""

import logging
import sqlite3
from datetime import datetime, timezone
from enum import Enum, auto
from typing import Callable, Optional

from ..sdk.gateway import GatewayError, RemoteGateway
from ..storage.ledger import LedgerCache
from ..storage.models import PaymentRecord
from .models import Publication
from .notifications import Notifier

logger = logging.getLogger(__name__)

SUBSCRIBE_FAILED_MESSAGE = "Subscription failed"
NAME_REQUIRED_MESSAGE = "Please enter your name"
SELECTION_REQUIRED_MESSAGE = "Please select a publication"


class SubscribeState(Enum):
    IDLE = auto()
    SUBMITTING = auto()
    COMMITTED = auto()
    FAILED = auto()


class SubscribeOutcome(Enum):
    """Result of a single ``subscribe`` call."""
    COMMITTED = auto()  # Server accepted, ledger written
    FAILED = auto()     # Server or transport failure, ledger untouched
    REJECTED = auto()   # Local precondition or busy, nothing sent


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SubscriptionService:
    """Submits subscriptions and projects them into the payment ledger.
    
    The ledger is written only after the server confirms, so a rejected
    subscription never produces a ledger entry. The two stores are still
    independent: if the process dies between the server accepting and the
    ledger write, the server holds a subscription the ledger never sees.
    """

    def __init__(
        self,
        gateway: RemoteGateway,
        ledger: LedgerCache,
        notifier: Notifier,
        clock: Callable[[], datetime] = _utcnow,
        due_days: int = 30
    ):
        self.gateway = gateway
        self.ledger = ledger
        self.notifier = notifier
        self.clock = clock
        self.due_days = due_days
        self.state = SubscribeState.IDLE
        self.last_record: Optional[PaymentRecord] = None

    @property
    def busy(self) -> bool:
        return self.state == SubscribeState.SUBMITTING

    def reset(self) -> None:
        """Return to IDLE for a fresh attempt (e.g. a new selection)."""
        if self.state == SubscribeState.SUBMITTING:
            raise RuntimeError("Cannot reset while a submission is in flight")
        self.state = SubscribeState.IDLE
        self.last_record = None

    async def subscribe(
        self,
        publication: Optional[Publication],
        customer_name: str
    ) -> SubscribeOutcome:
        """Submit a subscription for ``customer_name``.
        
        Args:
            publication: The selected publication
            customer_name: Name as typed; trimmed before sending
            
        Returns:
            The outcome of this attempt
        """
        if self.state == SubscribeState.SUBMITTING:
            logger.debug("Ignoring subscribe while a submission is in flight")
            return SubscribeOutcome.REJECTED
        if self.state == SubscribeState.COMMITTED:
            logger.debug("Ignoring subscribe after commit; reset() first")
            return SubscribeOutcome.REJECTED

        name = customer_name.strip()
        if not name:
            self.notifier.error(NAME_REQUIRED_MESSAGE)
            return SubscribeOutcome.REJECTED
        if publication is None:
            self.notifier.error(SELECTION_REQUIRED_MESSAGE)
            return SubscribeOutcome.REJECTED

        self.state = SubscribeState.SUBMITTING
        try:
            await self.gateway.subscribe(
                customer_name=name,
                publication_id=publication.id,
                amount=publication.monthly_price
            )
        except GatewayError as e:
            logger.error("Subscription error for %r -> %s: %s", name, publication.id, e)
            self.state = SubscribeState.FAILED
            self.notifier.error(e.server_message or SUBSCRIBE_FAILED_MESSAGE)
            self.state = SubscribeState.IDLE
            return SubscribeOutcome.FAILED

        # Only reached on server success, and only once per attempt.
        record = PaymentRecord.for_subscription(
            subscription_name=publication.name,
            amount=publication.monthly_price,
            now=self.clock(),
            due_days=self.due_days
        )
        try:
            self.ledger.append(record)
        except (ValueError, OSError, sqlite3.Error) as e:
            # Server already holds the subscription; the ledger does not.
            logger.error("Ledger write failed after %r subscribed to %s: %s", name, publication.id, e)
            self.state = SubscribeState.FAILED
            self.notifier.error(SUBSCRIBE_FAILED_MESSAGE)
            self.state = SubscribeState.IDLE
            return SubscribeOutcome.FAILED
        self.last_record = record
        self.state = SubscribeState.COMMITTED

        logger.info("Subscribed %r to %s", name, publication.id)
        self.notifier.success(f"Subscribed to {publication.name} successfully!")
        return SubscribeOutcome.COMMITTED
