import logging

import pytest

from conftest import make_app


def test_defaults(onturn):
    assert onturn.port == 5000
    assert onturn.app.config["SECRET_KEY"] == "test-secret"
    assert onturn.app.config["TESTING"] is True
    assert "SQLALCHEMY_DATABASE_URI" in onturn.app.config


def test_port_must_be_numeric(tmp_path):
    with pytest.raises(RuntimeError, match="PORT"):
        make_app(tmp_path, PORT="http")


def test_log_level_must_be_known(tmp_path):
    with pytest.raises(RuntimeError, match="LOG_LEVEL"):
        make_app(tmp_path, LOG_LEVEL="chatty")


def test_log_level_applied(tmp_path):
    make_app(tmp_path, LOG_LEVEL="warning", PORT=8080)
    assert logging.getLogger().level == logging.WARNING
