"""
Signup session.

View-model for the "new subscription" page: catalog, selection dialog,
name field, payment method and navigation target.
"""

import logging
from enum import Enum
from typing import List, Optional

from .catalog import CatalogLoader
from .dedup import is_subscribed, subscribe_label
from .lookup import SubscriptionLookup
from .models import Publication, Subscription
from .subscribe import SubscribeOutcome, SubscriptionService

logger = logging.getLogger(__name__)

EMPTY_CATALOG_MESSAGE = "No publications available."
PROCESSING_LABEL = "Processing..."

SUBSCRIPTIONS_VIEW = "subscriptions"
PAYMENTS_VIEW = "payments"


class PaymentMethod(Enum):
    """How the user intends to pay. Display only; never sent to the server."""
    QR = "qr"
    COD = "cod"


class SignupSession:
    """State and actions of one signup page visit."""

    def __init__(
        self,
        catalog: CatalogLoader,
        lookup: SubscriptionLookup,
        service: SubscriptionService
    ):
        self.catalog = catalog
        self.lookup = lookup
        self.service = service

        self.publications: List[Publication] = []
        self.selected: Optional[Publication] = None
        self.dialog_open = False
        self.customer_name = ""
        self.payment_method = PaymentMethod.QR
        self.current_view = SUBSCRIPTIONS_VIEW

    @property
    def subscriptions(self) -> List[Subscription]:
        return self.lookup.subscriptions

    @property
    def empty_message(self) -> Optional[str]:
        return EMPTY_CATALOG_MESSAGE if not self.publications else None

    async def activate(self) -> List[Publication]:
        """Load the catalog for this visit."""
        self.publications = await self.catalog.load()
        return self.publications

    def find_publication(self, publication_id: str) -> Optional[Publication]:
        for publication in self.publications:
            if publication.id == publication_id:
                return publication
        return None

    def select(self, publication: Publication) -> None:
        """Open the subscribe dialog for a publication."""
        self.selected = publication
        self.dialog_open = True
        if not self.service.busy:
            self.service.reset()

    def close_dialog(self) -> None:
        self.dialog_open = False

    def choose_payment_method(self, method: PaymentMethod) -> None:
        self.payment_method = method

    async def set_customer_name(self, name: str) -> List[Subscription]:
        """Update the name field and refresh the subscribed set."""
        self.customer_name = name
        return await self.lookup.refresh(name)

    def is_subscribed(self, publication: Publication) -> bool:
        return is_subscribed(publication.id, self.lookup.subscriptions)

    def subscribe_label(self, publication: Publication) -> str:
        if self.service.busy:
            return PROCESSING_LABEL
        return subscribe_label(publication.id, self.lookup.subscriptions)

    def can_subscribe(self, publication: Publication) -> bool:
        return not self.service.busy and not self.is_subscribed(publication)

    async def confirm(self) -> SubscribeOutcome:
        """Submit the dialog.
        
        On success the dialog closes, the subscribed set is refreshed for
        the same name and the session moves to the payments view. On any
        other outcome the dialog stays open.
        """
        outcome = await self.service.subscribe(self.selected, self.customer_name)
        if outcome != SubscribeOutcome.COMMITTED:
            return outcome

        self.dialog_open = False
        await self.lookup.refresh(self.customer_name)
        self.current_view = PAYMENTS_VIEW
        logger.debug("Navigating to %s view", PAYMENTS_VIEW)
        return outcome
