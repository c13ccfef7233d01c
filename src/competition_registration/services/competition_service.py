"""Competition catalog service layer."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import Decimal
from typing import Protocol
from uuid import UUID

from competition_registration.db.models.competition import Competition
from competition_registration.domain.errors import (
    CompetitionNotFoundError,
    InvalidRequestError,
    compose_error_message,
)
from competition_registration.domain.money import parse_money

logger = logging.getLogger(__name__)


class SessionProtocol(Protocol):
    """Subset of SQLAlchemy session APIs used by competition service."""

    def commit(self) -> None: ...

    def rollback(self) -> None: ...

    def refresh(self, instance: object) -> None: ...


class CompetitionRepositoryProtocol(Protocol):
    """Competition repository contract consumed by service."""

    def get(self, competition_id: UUID) -> Competition | None: ...

    def list_competitions(self, *, city: str | None = None) -> list[Competition]: ...

    def add(
        self,
        *,
        name: str,
        price: Decimal,
        passport_required: bool,
        city: str,
    ) -> Competition: ...

    def delete(self, competition: Competition) -> None: ...


class RegistrationCounterProtocol(Protocol):
    """Counts registrations still holding a competition's old price."""

    def count_unpaid_for_competition(self, competition_id: UUID) -> int: ...


@dataclass(slots=True, frozen=True)
class CreateCompetitionInput:
    """Input model for competition creation."""

    name: str
    price: str
    city: str
    passport_required: bool = False


@dataclass(slots=True, frozen=True)
class UpdateCompetitionInput:
    """Input model for partial competition update."""

    competition_id: UUID
    name: str | None = None
    price: str | None = None
    city: str | None = None
    passport_required: bool | None = None


def normalize_city(city: str) -> str:
    return city.strip().lower()


class CompetitionService:
    """Application service for the competition catalog."""

    def __init__(
        self,
        *,
        competition_repository: CompetitionRepositoryProtocol,
        registration_counter: RegistrationCounterProtocol,
        session: SessionProtocol,
    ) -> None:
        self._competition_repository = competition_repository
        self._registration_counter = registration_counter
        self._session = session

    def list_competitions(self, *, city: str | None = None) -> list[Competition]:
        city_filter = normalize_city(city) if city and city.strip() else None
        return self._competition_repository.list_competitions(city=city_filter)

    def get_competition(self, competition_id: UUID) -> Competition:
        competition = self._competition_repository.get(competition_id)
        if competition is None:
            raise CompetitionNotFoundError(
                details={"competition_id": str(competition_id)}
            )
        return competition

    def create_competition(self, payload: CreateCompetitionInput) -> Competition:
        name = self._validated_name(payload.name)
        city = self._validated_city(payload.city)
        price = self._validated_price(payload.price)
        try:
            competition = self._competition_repository.add(
                name=name,
                price=price,
                passport_required=payload.passport_required,
                city=city,
            )
            self._session.commit()
            self._session.refresh(competition)
        except Exception:
            self._session.rollback()
            raise

        logger.info(
            "competition_created",
            extra={"competition_id": str(competition.id), "city": city},
        )
        return competition

    def update_competition(self, payload: UpdateCompetitionInput) -> Competition:
        competition = self.get_competition(payload.competition_id)
        previous_price = competition.price

        if payload.name is not None:
            competition.name = self._validated_name(payload.name)
        if payload.city is not None:
            competition.city = self._validated_city(payload.city)
        if payload.price is not None:
            competition.price = self._validated_price(payload.price)
        if payload.passport_required is not None:
            competition.passport_required = payload.passport_required
        competition.updated_at = datetime.now(tz=UTC)

        try:
            self._session.commit()
            self._session.refresh(competition)
        except Exception:
            self._session.rollback()
            raise

        if competition.price != previous_price:
            # Unpaid registrations keep the amount they were created with.
            logger.warning(
                "competition_price_changed",
                extra={
                    "competition_id": str(competition.id),
                    "previous_price": str(previous_price),
                    "price": str(competition.price),
                    "unpaid_registrations": (
                        self._registration_counter.count_unpaid_for_competition(
                            competition.id
                        )
                    ),
                },
            )
        return competition

    def delete_competition(self, competition_id: UUID) -> None:
        competition = self.get_competition(competition_id)
        try:
            self._competition_repository.delete(competition)
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise
        logger.info(
            "competition_deleted",
            extra={"competition_id": str(competition_id)},
        )

    def _validated_name(self, name: str) -> str:
        value = name.strip()
        if not value:
            raise InvalidRequestError(
                message=compose_error_message(
                    cause="Competition name is empty.",
                    action="Provide a non-empty competition name.",
                ),
                details={"field": "name"},
            )
        return value

    def _validated_city(self, city: str) -> str:
        value = normalize_city(city)
        if not value:
            raise InvalidRequestError(
                message=compose_error_message(
                    cause="Competition city is empty.",
                    action="Provide the city where the competition takes place.",
                ),
                details={"field": "city"},
            )
        return value

    def _validated_price(self, price: str) -> Decimal:
        try:
            value = parse_money(price)
        except ValueError as exc:
            raise InvalidRequestError(
                message=compose_error_message(
                    cause="Competition price must be a decimal number.",
                    action="Send the price with at most two decimal places.",
                ),
                details={"field": "price"},
            ) from exc
        if value < 0:
            raise InvalidRequestError(
                message=compose_error_message(
                    cause="Competition price cannot be negative.",
                    action="Send a price greater than or equal to zero.",
                ),
                details={"field": "price"},
            )
        return value
