from __future__ import annotations

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from ledger_config import LedgerConfig
from models import Base
from storage import KeyValueStore, SeasonStore

SEASON = "2024-2025"
USER = "ramesh"


@pytest.fixture
def store():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    yield KeyValueStore(session_factory=factory)
    engine.dispose()


@pytest.fixture
def season_store(store):
    return SeasonStore(store, USER, SEASON)


@pytest.fixture
def config():
    return LedgerConfig()


class FakeResponse:
    def __init__(self, payload, status_code=200):
        self._payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            import requests
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        return self._payload


class FakeHttp:
    """Stands in for ``requests.Session``; answers each post with the next queued payload."""

    def __init__(self, *answers):
        self.answers = list(answers)
        self.calls = []

    def post(self, url, params=None, json=None, timeout=None):
        self.calls.append({"url": url, "params": params, "json": json, "timeout": timeout})
        answer = self.answers.pop(0)
        if isinstance(answer, Exception):
            raise answer
        return answer


class FakeExtractor:
    """Extractor double for manager tests: returns canned classification and fields."""

    def __init__(self, is_ro=True, release_order=None, is_cmr=True, cmr=None, slip=None):
        self.is_ro = is_ro
        self.release_order = release_order
        self.is_cmr = is_cmr
        self.cmr = cmr
        self.slip = slip

    def is_dhan_delivery_order(self, data, mime_type="application/pdf"):
        return self.is_ro

    def extract_release_order(self, data, mime_type="application/pdf"):
        return self.release_order

    def is_cmr_deposit_order(self, data, mime_type="application/pdf"):
        return self.is_cmr

    def extract_cmr_order(self, data, mime_type="application/pdf"):
        return dict(self.cmr)

    def extract_weighing_slip(self, data, mime_type):
        return dict(self.slip)
