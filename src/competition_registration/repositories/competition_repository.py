"""Competition catalog persistence operations."""

from __future__ import annotations

from datetime import UTC, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from competition_registration.db.models.competition import Competition


class CompetitionRepository:
    """Repository for competitions offered for registration."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def get(self, competition_id: UUID) -> Competition | None:
        return self._session.get(Competition, competition_id)

    def list_competitions(self, *, city: str | None = None) -> list[Competition]:
        statement = select(Competition).order_by(
            Competition.city.asc(),
            Competition.name.asc(),
        )
        if city is not None:
            statement = statement.where(Competition.city == city)
        return list(self._session.scalars(statement).all())

    def add(
        self,
        *,
        name: str,
        price: Decimal,
        passport_required: bool,
        city: str,
    ) -> Competition:
        now = datetime.now(tz=UTC)
        competition = Competition(
            name=name,
            price=price,
            passport_required=passport_required,
            city=city,
            created_at=now,
            updated_at=now,
        )
        self._session.add(competition)
        self._session.flush()
        return competition

    def delete(self, competition: Competition) -> None:
        self._session.delete(competition)
        self._session.flush()
