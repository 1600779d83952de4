import logging

import pytest

from app import OnTurnApp


def make_app(tmp_path, **extra):
    config = {
        "SECRET_KEY": "test-secret",
        "DATABASE_URL": f"sqlite:///{tmp_path / 'onturn.db'}",
        "LOG_LEVEL": "DEBUG",
        "TESTING": True,
    }
    config.update(extra)
    return OnTurnApp(config)


@pytest.fixture(autouse=True)
def root_log_level():
    """Apps set the root logger level from LOG_LEVEL, put it back afterwards"""
    root = logging.getLogger()
    level = root.level
    yield
    root.setLevel(level)


@pytest.fixture
def onturn(tmp_path):
    onturn = make_app(tmp_path)
    with onturn.app.app_context():
        yield onturn


@pytest.fixture
def make_onturn(tmp_path):
    """Another app on the same database file, i.e. a page reload"""
    return lambda **extra: make_app(tmp_path, **extra)


@pytest.fixture
def client(onturn):
    return onturn.app.test_client()


@pytest.fixture
def storage(onturn):
    return onturn.storage
