"""Payment status state machine for registrations."""

from __future__ import annotations

from competition_registration.db.models.registration import PaymentStatus

# success is terminal; failed -> success covers a gateway-verified payment
# that arrives after an abandoned attempt was already marked failed.
ALLOWED_TRANSITIONS: dict[PaymentStatus, frozenset[PaymentStatus]] = {
    PaymentStatus.PENDING: frozenset({PaymentStatus.SUCCESS, PaymentStatus.FAILED}),
    PaymentStatus.FAILED: frozenset({PaymentStatus.PENDING, PaymentStatus.SUCCESS}),
    PaymentStatus.SUCCESS: frozenset(),
}


def can_transition(current: PaymentStatus, target: PaymentStatus) -> bool:
    """Return whether ``current -> target`` is a legal status change."""

    return target in ALLOWED_TRANSITIONS[current]


def sources_for(target: PaymentStatus) -> frozenset[PaymentStatus]:
    """Return every status from which ``target`` can be reached."""

    return frozenset(
        status
        for status, targets in ALLOWED_TRANSITIONS.items()
        if target in targets
    )
