"""Competition catalog routes."""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status

from competition_registration.api.dependencies import get_competition_service
from competition_registration.api.schemas.competitions import (
    CompetitionListResponse,
    CompetitionResponse,
    CreateCompetitionRequest,
    UpdateCompetitionRequest,
)
from competition_registration.services.competition_service import (
    CompetitionService,
    CreateCompetitionInput,
    UpdateCompetitionInput,
)

router = APIRouter(prefix="/competitions", tags=["Competitions"])


@router.get("", response_model=CompetitionListResponse)
def list_competitions(
    service: Annotated[CompetitionService, Depends(get_competition_service)],
    city: Annotated[str | None, Query(max_length=120)] = None,
) -> CompetitionListResponse:
    """List competitions, optionally only those held in one city."""

    return CompetitionListResponse.from_models(service.list_competitions(city=city))


@router.get(
    "/{competition_id}",
    response_model=CompetitionResponse,
    responses={404: {"description": "Competition not found"}},
)
def get_competition(
    competition_id: UUID,
    service: Annotated[CompetitionService, Depends(get_competition_service)],
) -> CompetitionResponse:
    return CompetitionResponse.from_model(service.get_competition(competition_id))


@router.post(
    "",
    response_model=CompetitionResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"description": "Invalid payload"}},
)
def create_competition(
    payload: CreateCompetitionRequest,
    service: Annotated[CompetitionService, Depends(get_competition_service)],
) -> CompetitionResponse:
    competition = service.create_competition(
        CreateCompetitionInput(
            name=payload.name,
            price=payload.price,
            city=payload.city,
            passport_required=payload.passport_required,
        )
    )
    return CompetitionResponse.from_model(competition)


@router.put(
    "/{competition_id}",
    response_model=CompetitionResponse,
    responses={
        400: {"description": "Invalid payload"},
        404: {"description": "Competition not found"},
    },
)
def update_competition(
    competition_id: UUID,
    payload: UpdateCompetitionRequest,
    service: Annotated[CompetitionService, Depends(get_competition_service)],
) -> CompetitionResponse:
    """Update only the fields present in the payload."""

    competition = service.update_competition(
        UpdateCompetitionInput(
            competition_id=competition_id,
            name=payload.name,
            price=payload.price,
            city=payload.city,
            passport_required=payload.passport_required,
        )
    )
    return CompetitionResponse.from_model(competition)


@router.delete(
    "/{competition_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"description": "Competition not found"}},
)
def delete_competition(
    competition_id: UUID,
    service: Annotated[CompetitionService, Depends(get_competition_service)],
) -> Response:
    service.delete_competition(competition_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
