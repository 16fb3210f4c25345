"""
Catalog and subscription types.

Both are read-only views of server state, parsed from the gateway's JSON.
"""

from dataclasses import dataclass
from typing import Any, Dict


@dataclass(frozen=True)
class Publication:
    """A subscribable publication as listed by the server."""
    id: str
    name: str
    language: str
    monthly_price: float

    def __post_init__(self):
        """Validate the price is positive."""
        if self.monthly_price <= 0:
            raise ValueError("monthly_price must be > 0")

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "Publication":
        """Parse a catalog entry.
        
        Raises:
            ValueError: If the entry is malformed
        """
        if not isinstance(data, dict):
            raise ValueError(f"Publication must be an object, got {data!r}")
        try:
            return cls(
                id=str(data["_id"]),
                name=data["name"],
                language=data.get("language", ""),
                monthly_price=float(data["monthlyPrice"])
            )
        except (KeyError, TypeError) as e:
            raise ValueError(f"Malformed publication: {data!r}") from e


@dataclass(frozen=True)
class Subscription:
    """Server record linking a customer name to a publication."""
    publication_id: str
    customer_name: str

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "Subscription":
        """Parse a subscription entry.
        
        ``publication`` is normally a populated object, but a bare id is
        accepted too.
        
        Raises:
            ValueError: If the entry is malformed
        """
        if not isinstance(data, dict):
            raise ValueError(f"Subscription must be an object, got {data!r}")
        publication = data.get("publication")
        if isinstance(publication, dict):
            publication_id = publication.get("_id")
        else:
            publication_id = publication
        if publication_id is None:
            raise ValueError(f"Subscription without publication: {data!r}")
        return cls(
            publication_id=str(publication_id),
            customer_name=data.get("customerName", "")
        )
