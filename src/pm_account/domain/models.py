"""Domain models for pm_account — pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class User:
    email: str                  # normalized: trimmed, lower-cased
    balance: float              # euros, never negative
    created_at: datetime | None = None
    updated_at: datetime | None = None
