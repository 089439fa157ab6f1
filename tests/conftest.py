"""Pytest configuration and fixtures."""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from clientdesk.api.backend import LocalBackend
from clientdesk.database.schema import Base


@pytest.fixture
def session():
    """Create a temporary in-memory database session for testing."""
    engine = create_engine("sqlite:///:memory:", echo=False)
    Base.metadata.create_all(engine)

    SessionLocal = sessionmaker(bind=engine)
    session = SessionLocal()

    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def backend(session):
    return LocalBackend(session)


@pytest.fixture
def client_records():
    """Plain client records as the controllers hold them."""
    return [
        {"id": "c1", "name": "Anna Bianchi", "email": "anna@example.com", "company": "Acme", "city": "Rome"},
        {"id": "c2", "name": "Marco Verdi", "email": "marco@example.com", "company": "Globex", "city": "Milan"},
        {"id": "c3", "name": "Annalisa Neri", "email": "annalisa@example.com", "company": "Initech", "city": "Milan"},
        {"id": "c4", "name": "Luca Russo", "email": "luca@example.com", "company": "Rome Builders", "city": "Turin"},
        {"id": "c5", "name": "Giulia Conti", "email": "giulia@example.com", "company": "Umbrella", "city": None},
    ]
