from __future__ import annotations

from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool
from support import (
    FakeDocumentUploader,
    FakePaymentGateway,
    RecordingDispatcher,
    build_test_settings,
    seed_competition,
)

from competition_registration.api.app import create_app
from competition_registration.api.dependencies import (
    get_document_uploader,
    get_notification_dispatcher,
    get_payment_gateway,
)
from competition_registration.core.settings import Settings, get_settings
from competition_registration.db.base import Base, import_orm_models
from competition_registration.db.models.competition import Competition
from competition_registration.db.session import get_db_session


@pytest.fixture
def sqlite_session_factory() -> Generator[sessionmaker[Session], None, None]:
    import_orm_models()
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    factory = sessionmaker(
        bind=engine,
        class_=Session,
        autoflush=False,
        autocommit=False,
        expire_on_commit=False,
    )
    try:
        yield factory
    finally:
        Base.metadata.drop_all(engine)


@pytest.fixture
def payment_gateway() -> FakePaymentGateway:
    return FakePaymentGateway()


@pytest.fixture
def document_uploader() -> FakeDocumentUploader:
    return FakeDocumentUploader()


@pytest.fixture
def dispatcher() -> RecordingDispatcher:
    return RecordingDispatcher()


@pytest.fixture
def test_settings() -> Settings:
    return build_test_settings()


@pytest.fixture
def client(
    sqlite_session_factory: sessionmaker[Session],
    payment_gateway: FakePaymentGateway,
    document_uploader: FakeDocumentUploader,
    dispatcher: RecordingDispatcher,
    test_settings: Settings,
) -> Generator[TestClient, None, None]:
    app = create_app()

    def override_get_db_session() -> Generator[Session, None, None]:
        with sqlite_session_factory() as session:
            yield session

    app.dependency_overrides[get_db_session] = override_get_db_session
    app.dependency_overrides[get_settings] = lambda: test_settings
    app.dependency_overrides[get_payment_gateway] = lambda: payment_gateway
    app.dependency_overrides[get_document_uploader] = lambda: document_uploader
    app.dependency_overrides[get_notification_dispatcher] = lambda: dispatcher
    with TestClient(app, follow_redirects=False) as test_client:
        yield test_client


@pytest.fixture
def competition(sqlite_session_factory: sessionmaker[Session]) -> Competition:
    with sqlite_session_factory() as session:
        return seed_competition(session)


@pytest.fixture
def passport_competition(sqlite_session_factory: sessionmaker[Session]) -> Competition:
    with sqlite_session_factory() as session:
        return seed_competition(
            session,
            name="International Duet",
            price="1500.00",
            passport_required=True,
            city="mumbai",
        )
