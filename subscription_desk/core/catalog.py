"""
Publication catalog loading.
"""

import logging
from typing import List

from ..sdk.gateway import GatewayError, RemoteGateway
from .models import Publication
from .notifications import Notifier

logger = logging.getLogger(__name__)

CATALOG_FAILED_MESSAGE = "Failed to fetch available publications"


class CatalogLoader:
    """Fetches every publication once per call, in server order."""

    def __init__(self, gateway: RemoteGateway, notifier: Notifier):
        self.gateway = gateway
        self.notifier = notifier

    async def load(self) -> List[Publication]:
        """Fetch the catalog.
        
        Returns:
            Publications as ordered by the server, minus entries that do
            not parse, or an empty list on any failure (after notifying
            the user)
        """
        try:
            payload = await self.gateway.list_publications()
            if not isinstance(payload, list):
                raise ValueError(f"Expected a list of publications, got {type(payload).__name__}")
            publications = self._parse(payload)
        except GatewayError as e:
            logger.error("Error fetching publications: %s", e)
            self.notifier.error(e.server_message or CATALOG_FAILED_MESSAGE)
            return []
        except ValueError as e:
            logger.error("Malformed publication catalog: %s", e)
            self.notifier.error(CATALOG_FAILED_MESSAGE)
            return []

        logger.debug("Loaded %d publications", len(publications))
        return publications

    def _parse(self, payload: list) -> List[Publication]:
        publications = []
        for item in payload:
            try:
                publications.append(Publication.from_api(item))
            except ValueError as e:
                logger.warning("Skipping unreadable publication: %s", e)
        return publications
