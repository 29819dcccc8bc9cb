"""Feed records kept in the feed log.

A record is immutable; edits produce a replacement record with the same id.
Bottle and formula feeds may carry an amount (mL) and a brand; breast feeds
never do, so switching a record to a breast side clears both.
"""

from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional

from django.db import models

from .exceptions import InvalidAmount, InvalidRange


class FeedKind(models.TextChoices):
    LEFT = "breast-l", "Left"
    RIGHT = "breast-r", "Right"
    BOTTLE = "bottle", "Bottle"
    FORMULA = "formula", "Formula"

    @property
    def takes_amount(self):
        return self in (FeedKind.BOTTLE, FeedKind.FORMULA)


DEFAULT_KIND = FeedKind.LEFT


@dataclass(frozen=True)
class FeedRecord:
    """One feeding event.

    Attributes:
        id: Unique id, digits of the creation instant in epoch milliseconds
        start: When the feed started (aware datetime)
        end: When it finished, or None while unknown
        kind: FeedKind value
        amount: Quantity in mL (bottle/formula only)
        brand: Product name (bottle/formula only)
        notes: Free text
    """

    id: str
    start: datetime
    end: Optional[datetime] = None
    kind: FeedKind = DEFAULT_KIND
    amount: Optional[Decimal] = None
    brand: str = ""
    notes: str = ""

    def __post_init__(self):
        object.__setattr__(self, "kind", FeedKind(self.kind))
        if self.end is not None and self.end < self.start:
            raise InvalidRange(self.start, self.end)
        if self.amount is not None and self.amount < 0:
            raise InvalidAmount(self.amount)
        if not self.kind.takes_amount and (self.amount is not None or self.brand):
            object.__setattr__(self, "amount", None)
            object.__setattr__(self, "brand", "")

    def __str__(self):
        return f"{self.kind.label} at {self.start.isoformat()}"

    @property
    def duration(self) -> Optional[timedelta]:
        if self.end is None:
            return None
        return self.end - self.start

    def updated(self, **changes) -> "FeedRecord":
        """Return a copy with changes applied; validation reruns on the copy."""
        return replace(self, **changes)
