"""Test configuration and fixtures."""

from typing import Generator

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from editorial_desk.content.schemas import ContentItemCreate
from editorial_desk.content.services import ContentService
from editorial_desk.db import audit_models, models  # noqa: F401
from editorial_desk.db.base import Base
from editorial_desk.db.models import (
    CategoryModel,
    ItemTypeModel,
    PageBlockModel,
    PageModel,
    SectionModel,
)


@pytest.fixture
def db_session() -> Generator[Session, None, None]:
    """Create a fresh in-memory database for each test."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    session_local = sessionmaker(bind=engine, autoflush=False)
    session = session_local()
    yield session
    session.close()
    engine.dispose()


@pytest.fixture
def catalog(db_session):
    """Seed a small slot catalog.

    Section S has:
      A - featured block
      B - general block
      C - block narrowed to category S-news
      D - block narrowed to item type article
    Section N has:
      X - general block
    """
    db_session.add_all(
        [
            SectionModel(id="S", name="Sport", slug="sport"),
            SectionModel(id="N", name="News", slug="news"),
            CategoryModel(id="S-news", section_id="S", name="Sport news", slug="news"),
            ItemTypeModel(id="article", name="Article", slug="article"),
            PageModel(id="home", section_id=None, name="Home"),
            PageModel(id="sport", section_id="S", name="Sport"),
        ]
    )
    db_session.flush()
    db_session.add_all(
        [
            PageBlockModel(
                id="A", page_id="home", section_id="S", is_featured=True, name="Lead"
            ),
            PageBlockModel(id="B", page_id="sport", section_id="S", name="Latest"),
            PageBlockModel(
                id="C", page_id="sport", section_id="S", category_id="S-news",
                name="Sport news",
            ),
            PageBlockModel(
                id="D", page_id="sport", section_id="S", item_type_id="article",
                name="Articles",
            ),
            PageBlockModel(id="X", page_id="home", section_id="N", name="Headlines"),
        ]
    )
    db_session.commit()
    return db_session


@pytest.fixture
def service(catalog) -> ContentService:
    """Content service over the seeded catalog."""
    return ContentService(catalog)


@pytest.fixture
def item(service):
    """A freshly created, unlocked, unplaced content item."""
    return service.create(ContentItemCreate(title="Launch Day"), "u1")
