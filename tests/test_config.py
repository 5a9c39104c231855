"""Unit tests for core/config.py -- SECRET_KEY policy and session settings validation."""

import pytest
from pydantic import ValidationError

from core.config import Settings

_KEY = "k" * 32


class TestSecretKey:
    def test_debug_generates_key(self) -> None:
        settings = Settings(debug=True, secret_key="")
        assert len(settings.secret_key) >= 32

    def test_production_requires_key(self) -> None:
        with pytest.raises(ValidationError, match="SECRET_KEY is required"):
            Settings(debug=False, secret_key="")

    def test_short_key_rejected(self) -> None:
        with pytest.raises(ValidationError, match="at least 32"):
            Settings(debug=True, secret_key="short")


class TestSessionSettings:
    def test_defaults(self) -> None:
        settings = Settings(secret_key=_KEY)
        assert settings.session_mode == "stateful"
        assert settings.logout_policy == "delete"
        assert settings.refresh_token_expire_seconds > settings.access_token_expire_seconds

    @pytest.mark.parametrize(
        "overrides",
        [
            {"session_mode": "sticky"},
            {"logout_policy": "forget"},
            {"access_token_expire_seconds": 0},
            {"access_token_expire_seconds": 600, "refresh_token_expire_seconds": 600},
        ],
    )
    def test_invalid_values_rejected(self, overrides) -> None:
        with pytest.raises(ValidationError):
            Settings(secret_key=_KEY, **overrides)

    def test_env_vars_are_read(self, monkeypatch) -> None:
        monkeypatch.setenv("SESSION_MODE", "stateless")
        monkeypatch.setenv("LOGOUT_POLICY", "invalidate")
        settings = Settings(secret_key=_KEY)
        assert settings.session_mode == "stateless"
        assert settings.logout_policy == "invalidate"
