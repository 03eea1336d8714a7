from __future__ import annotations

import pytest

from fakes import InMemoryDB, build_fake_container
from tutoring_system import create_app


@pytest.fixture
def db():
    return InMemoryDB()


@pytest.fixture
def container(db):
    return build_fake_container(db)


@pytest.fixture
def app(monkeypatch, container):
    monkeypatch.setenv("APP_ENV", "testing")
    app = create_app(container)
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()
