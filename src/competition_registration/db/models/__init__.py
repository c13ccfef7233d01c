"""ORM models for the competition registration domain."""

from competition_registration.db.models.competition import Competition
from competition_registration.db.models.registration import (
    PaymentStatus,
    Registration,
)

__all__ = [
    "Competition",
    "PaymentStatus",
    "Registration",
]
