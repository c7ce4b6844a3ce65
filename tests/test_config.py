"""Tests for SyncConfig validation and environment loading."""

import pytest
from pydantic import ValidationError

from services.pipeline.config import SyncConfig

ENV_VARS = [
    "ZENDESK_DOMAIN",
    "ZENDESK_USER",
    "ZENDESK_PASSWORD",
    "ZENDESK_API_TOKEN",
    "ZENDESK_ORGANIZATIONS",
    "ZENDESK_USERS",
    "ZENDESK_TICKETS",
    "ZENDESK_TOPICS",
    "ZENDESK_TICKETS_LAST_UPDATED_N_DAYS_AGO",
    "ZENDESK_COMMENTS",
    "ZENDESK_APPEND_COMMENTS_TO_TICKETS",
    "ZENDESK_SLEEP_BETWEEN_RUNS",
]


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestValidation:
    """Tests for option rules."""

    def test_defaults(self, config_factory) -> None:
        config = config_factory()
        assert config.organizations and config.users and config.tickets and config.topics
        assert config.tickets_last_updated_n_days_ago == 1
        assert config.comments is False
        assert config.append_comments_to_tickets is False
        assert config.sleep_seconds == 300
        assert config.one_shot is False

    def test_credentials_required(self, config_factory) -> None:
        with pytest.raises(ValidationError, match="either a password or api_token"):
            config_factory(api_token=None)

    def test_both_credentials_rejected(self, config_factory) -> None:
        with pytest.raises(ValidationError, match="both password and api_token"):
            config_factory(password="pw")

    def test_append_requires_comments(self, config_factory) -> None:
        with pytest.raises(ValidationError):
            config_factory(append_comments_to_tickets=True)
        assert config_factory(comments=True, append_comments_to_tickets=True).comments

    @pytest.mark.parametrize("days", [-2, -0.5])
    def test_negative_window_rejected(self, config_factory, days) -> None:
        with pytest.raises(ValidationError):
            config_factory(tickets_last_updated_n_days_ago=days)

    def test_full_fetch_is_one_shot(self, config_factory) -> None:
        assert config_factory(tickets_last_updated_n_days_ago=-1).one_shot

    def test_negative_sleep_rejected(self, config_factory) -> None:
        with pytest.raises(ValidationError):
            config_factory(sleep_between_runs=-1)

    def test_empty_domain_rejected(self, config_factory) -> None:
        with pytest.raises(ValidationError):
            config_factory(domain="")

    def test_client_kwargs_unwrap_secrets(self, config_factory) -> None:
        assert config_factory().client_kwargs() == {
            "domain": "acme.zendesk.com",
            "user": "admin@acme.test",
            "password": None,
            "api_token": "secret-token",
        }

    def test_secrets_hidden_in_repr(self, config_factory) -> None:
        assert "secret-token" not in repr(config_factory())


class TestFromEnv:
    """Tests for SyncConfig.from_env."""

    def test_reads_environment(self, clean_env) -> None:
        clean_env.setenv("ZENDESK_DOMAIN", "acme.zendesk.com")
        clean_env.setenv("ZENDESK_USER", "admin@acme.test")
        clean_env.setenv("ZENDESK_PASSWORD", "pw")
        clean_env.setenv("ZENDESK_TOPICS", "false")
        clean_env.setenv("ZENDESK_COMMENTS", "yes")
        clean_env.setenv("ZENDESK_TICKETS_LAST_UPDATED_N_DAYS_AGO", "7")

        config = SyncConfig.from_env()
        assert config.password.get_secret_value() == "pw"
        assert config.topics is False
        assert config.comments is True
        assert config.tickets_last_updated_n_days_ago == 7

    def test_overrides_win(self, clean_env) -> None:
        clean_env.setenv("ZENDESK_DOMAIN", "acme.zendesk.com")
        clean_env.setenv("ZENDESK_USER", "admin@acme.test")
        clean_env.setenv("ZENDESK_API_TOKEN", "tok")
        clean_env.setenv("ZENDESK_TOPICS", "true")

        config = SyncConfig.from_env(topics=False, tickets_last_updated_n_days_ago=None)
        assert config.topics is False
        assert config.tickets_last_updated_n_days_ago == 1

    def test_missing_settings(self, clean_env) -> None:
        with pytest.raises(ValidationError):
            SyncConfig.from_env()
