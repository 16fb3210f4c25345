"""
Data models for storage layer.

Defines the locally cached payment ledger entry and its serialized form.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, Optional, Union


class PaymentStatus(Enum):
    """Known payment states. Downstream views may store others."""
    PAID = "paid"
    PENDING = "pending"


def _to_iso(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def _from_iso(value: str) -> datetime:
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value)


@dataclass(frozen=True)
class PaymentRecord:
    """Immutable ledger entry for money owed or paid on a subscription.
    
    Appended once per confirmed subscription and never modified. The
    record is not linked to the server's subscription state: an entry
    only proves that the server accepted the request at the time.
    """
    id: str
    subscription_name: str
    amount: float
    due_date: datetime
    status: Union[PaymentStatus, str]
    paid_date: Optional[datetime] = None

    @classmethod
    def for_subscription(
        cls,
        subscription_name: str,
        amount: float,
        now: datetime,
        due_days: int = 30
    ) -> "PaymentRecord":
        """Build a paid record for a subscription confirmed at ``now``."""
        return cls(
            id=str(int(now.timestamp() * 1000)),
            subscription_name=subscription_name,
            amount=amount,
            due_date=now + timedelta(days=due_days),
            status=PaymentStatus.PAID,
            paid_date=now
        )

    @property
    def status_value(self) -> str:
        if isinstance(self.status, PaymentStatus):
            return self.status.value
        return self.status

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the camelCase form kept in the local store."""
        data = {
            "id": self.id,
            "subscriptionName": self.subscription_name,
            "amount": self.amount,
            "dueDate": _to_iso(self.due_date),
            "status": self.status_value,
        }
        if self.paid_date is not None:
            data["paidDate"] = _to_iso(self.paid_date)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PaymentRecord":
        """Parse a stored entry.
        
        Raises:
            ValueError: If a required field is missing or malformed
        """
        try:
            raw_status = data["status"]
            try:
                status = PaymentStatus(raw_status)
            except ValueError:
                status = raw_status
            paid_date = data.get("paidDate")
            return cls(
                id=str(data["id"]),
                subscription_name=data["subscriptionName"],
                amount=float(data["amount"]),
                due_date=_from_iso(data["dueDate"]),
                status=status,
                paid_date=_from_iso(paid_date) if paid_date else None
            )
        except (KeyError, TypeError, AttributeError) as e:
            raise ValueError(f"Malformed payment record: {data!r}") from e
