"""
Duplicate-subscription guard.
"""

from typing import Iterable

from .models import Subscription

SUBSCRIBE_LABEL = "Subscribe"
ALREADY_SUBSCRIBED_LABEL = "Already Subscribed"


def is_subscribed(publication_id: str, subscriptions: Iterable[Subscription]) -> bool:
    """True if any subscription references the publication."""
    return any(sub.publication_id == publication_id for sub in subscriptions)


def subscribe_label(publication_id: str, subscriptions: Iterable[Subscription]) -> str:
    """Label for the subscribe control of a publication."""
    if is_subscribed(publication_id, subscriptions):
        return ALREADY_SUBSCRIBED_LABEL
    return SUBSCRIBE_LABEL
