# tests/test_setup.py

from __future__ import annotations

import logging

import pytest

from taskmanager import config
from taskmanager.logging_setup import setup_logging
from taskmanager.passwords import PasswordHasher


@pytest.fixture()
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for h in list(root.handlers):
        root.removeHandler(h)
        h.close()
    for h in handlers:
        root.addHandler(h)
    root.setLevel(level)
    logging.captureWarnings(False)


def test_setup_logging_writes_our_records_to_file(tmp_path, restore_root_logger) -> None:
    setup_logging(logging.DEBUG, log_dir=tmp_path)

    logging.getLogger("taskmanager.tests").info("hello from the tests")
    for h in logging.getLogger().handlers:
        h.flush()

    assert "hello from the tests" in (tmp_path / "taskmanager.log").read_text(encoding="utf-8")


def test_require_secret_key(monkeypatch) -> None:
    monkeypatch.setattr(config, "SECRET_KEY", None)
    with pytest.raises(RuntimeError):
        config.require_secret_key()

    monkeypatch.setattr(config, "SECRET_KEY", "s3cret")
    assert config.require_secret_key() == "s3cret"


def test_password_hasher_round_trip(hasher: PasswordHasher) -> None:
    digest = hasher.hash("pw123456")

    assert digest != "pw123456"
    assert hasher.verify("pw123456", digest)
    assert not hasher.verify("pw123457", digest)
    assert not hasher.verify("pw123456", "not-a-bcrypt-digest")
