"""Shared fixtures: split registry, stub remote, job database, fake app."""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from splitsync.core.db import init_db
from splitsync.core.exceptions import RemoteUnavailableError
from splitsync.fake.server import create_app
from splitsync.fake.store import FakeStore
from splitsync.models.schemas.split_registry import SplitRegistry
from splitsync.models.schemas.visitor import RemoteVisitorModel
from splitsync.repositories.remote_repo import RemoteRepository
from splitsync.services.job_service import JobService

EXISTING_VISITOR_ID = "00000000-0000-0000-0000-000000000000"

SPLIT_REGISTRY = {
    "blue_button": {"false": 50, "true": 50},
    "quagmire": {"untenable": 50, "manageable": 50},
    "time": {"hammertime": 100, "clobberin_time": 0},
}


class StubRemote:
    """Records calls and answers from canned data, or raises when told to."""

    def __init__(self, visitor=None, split_registry=None, identifier_visitor=None):
        self.visitor = visitor or {
            "id": EXISTING_VISITOR_ID,
            "assignments": [
                {"split_name": "blue_button", "variant": "true", "unsynced": True},
                {"split_name": "time", "variant": "waits_for_no_man", "unsynced": False},
            ],
        }
        self.split_registry = split_registry if split_registry is not None else SPLIT_REGISTRY
        self.identifier_visitor = identifier_visitor
        self.calls = []
        self.unavailable = set()

    def _call(self, name, *args):
        self.calls.append((name, args))
        if name in self.unavailable:
            raise RemoteUnavailableError(f"{name} timed out")

    def calls_to(self, name):
        return [args for call, args in self.calls if call == name]

    def fetch_visitor(self, visitor_id):
        self._call("fetch_visitor", visitor_id)
        return RemoteVisitorModel.model_validate({**self.visitor, "id": visitor_id})

    def fetch_split_registry(self):
        self._call("fetch_split_registry")
        return SplitRegistry(self.split_registry)

    def create_identifier(self, identifier_type, visitor_id, value):
        self._call("create_identifier", identifier_type, visitor_id, value)
        if self.identifier_visitor is not None:
            return RemoteVisitorModel.model_validate(self.identifier_visitor)
        return RemoteVisitorModel(id=visitor_id)

    def visitor_from_identifier(self, identifier_type, identifier_value):
        self._call("visitor_from_identifier", identifier_type, identifier_value)
        return RemoteVisitorModel.model_validate(self.identifier_visitor)


@pytest.fixture
def remote():
    return StubRemote()


@pytest.fixture
def db_session():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(engine)
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def jobs(db_session):
    return JobService(db_session)


@pytest.fixture
def fake_store():
    return FakeStore(SPLIT_REGISTRY)


@pytest.fixture
def fake_client(fake_store):
    with TestClient(create_app(fake_store)) as client:
        yield client


@pytest.fixture
def remote_repo(fake_client):
    return RemoteRepository(http_client=fake_client)
