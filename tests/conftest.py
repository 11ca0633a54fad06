from __future__ import annotations

from contextlib import contextmanager

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from claimautopilot.config import PortalConfig, Timeouts


@pytest.fixture()
def isolated_db(monkeypatch, tmp_path):
    """
    Create an isolated sqlite database for API/pipeline integration tests.
    """
    from claimautopilot import app as app_module
    from claimautopilot.core import pipeline as pipeline_module
    from claimautopilot.core import portal_session as portal_session_module
    from claimautopilot.db import database as db_module
    from claimautopilot.db.database import Base

    db_file = tmp_path / "test_claimautopilot.db"
    test_engine = create_engine(
        f"sqlite:///{db_file}",
        connect_args={"check_same_thread": False},
    )
    TestingSessionLocal = sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=test_engine,
        expire_on_commit=False,
    )

    @contextmanager
    def testing_get_session():
        s = TestingSessionLocal()
        try:
            yield s
            s.commit()
        except Exception:
            s.rollback()
            raise
        finally:
            s.close()

    # patch db module symbols
    monkeypatch.setattr(db_module, "engine", test_engine, raising=True)
    monkeypatch.setattr(db_module, "SessionLocal", TestingSessionLocal, raising=True)
    monkeypatch.setattr(db_module, "get_session", testing_get_session, raising=True)

    # patch modules that imported these symbols directly
    monkeypatch.setattr(app_module, "get_session", testing_get_session, raising=True)
    monkeypatch.setattr(pipeline_module, "get_session", testing_get_session, raising=True)
    monkeypatch.setattr(
        portal_session_module, "SessionLocal", TestingSessionLocal, raising=True
    )

    # create tables after patching engine/session factory
    Base.metadata.create_all(bind=test_engine)
    return TestingSessionLocal


@pytest.fixture()
def portal_config() -> PortalConfig:
    """Credentials filled in, all settle delays zeroed."""
    return PortalConfig(
        customer_number="1234567",
        user_login="robot",
        password="secret",
        headless=True,
        timeouts=Timeouts(
            field_settle_ms=0,
            tab_settle_ms=0,
            upload_settle_ms=0,
            verify_settle_ms=0,
        ),
    )
