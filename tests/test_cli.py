"""Tests for main.py -- the `sessions` admin commands against a file database."""

import pytest

import main as cli
from auth.service import AuthService
from auth.sessions import SessionStore
from auth.store import UserStore
from helpers import RecordingMailer, make_settings, register_and_verify


@pytest.fixture
def db_url(tmp_path, monkeypatch) -> str:
    url = f"sqlite:///{tmp_path / 'cli.db'}"
    monkeypatch.setattr(cli, "get_settings", lambda: make_settings(database_url=url))
    return url


@pytest.fixture
def logged_in(db_url: str) -> str:
    """Create a verified user with a session; return the email."""
    users = UserStore(db_url)
    mailer = RecordingMailer()
    service = AuthService(users, SessionStore(users.engine), mailer, make_settings(database_url=db_url))
    register_and_verify(service, mailer, "alice@example.com")
    service.login("alice@example.com", "s3cret-pass", ip="10.0.0.9")
    users.close()
    return "alice@example.com"


def _session(db_url: str, email: str):
    users = UserStore(db_url)
    try:
        return SessionStore(users.engine).find_by_user(users.get_by_email(email).id)
    finally:
        users.close()


def test_list_and_show(logged_in: str, capsys) -> None:
    assert cli.main(["sessions", "list"]) == 0
    assert "alice@example.com" in capsys.readouterr().out
    assert cli.main(["sessions", "show", "ALICE@example.com"]) == 0
    assert "ip=10.0.0.9" in capsys.readouterr().out


def test_revoke_then_clear(logged_in: str, db_url: str) -> None:
    assert cli.main(["sessions", "revoke", logged_in]) == 0
    assert _session(db_url, logged_in).is_valid is False
    assert cli.main(["sessions", "clear", logged_in]) == 0
    assert _session(db_url, logged_in) is None
    assert cli.main(["sessions", "clear", logged_in]) == 1


def test_unknown_user_fails(db_url: str, capsys) -> None:
    assert cli.main(["sessions", "revoke", "ghost@example.com"]) == 1
    assert "No user" in capsys.readouterr().out


def test_stateless_mode_refuses(monkeypatch) -> None:
    monkeypatch.setattr(cli, "get_settings", lambda: make_settings(session_mode="stateless"))
    assert cli.main(["sessions", "list"]) == 1
