"""API router registration."""

from fastapi import APIRouter

from competition_registration.api.routes import (
    competitions,
    payments,
    registrations,
)

api_router = APIRouter()
api_router.include_router(competitions.router)
api_router.include_router(registrations.router)
api_router.include_router(payments.router)
