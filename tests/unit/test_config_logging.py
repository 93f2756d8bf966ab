"""
Unit Tests for Configuration and Logging
========================================
"""

import pytest
from pydantic import ValidationError

from attestkit.config import ChallengeSettings, Environment, LogLevel, Settings, ZKSettings
from attestkit.logging import bind_context, clear_context, get_logger, setup_logging
from attestkit.logging.logger import REDACTED, AttributeRedactor, redact_attributes


class TestSettings:
    """Tests for environment-driven settings."""

    def test_zk_defaults(self):
        config = ZKSettings()

        assert config.proof_cache_ttl_seconds == 604800
        assert config.timeout_for("age") == 30
        assert config.timeout_for("region") == 45
        assert config.timeout_for("uniqueness") == 20
        assert config.batch_group_size == 3
        assert "KA" in config.supported_regions_list

    def test_zk_env_override(self, monkeypatch):
        monkeypatch.setenv("ZK_AGE_TIMEOUT_SECONDS", "5")
        monkeypatch.setenv("ZK_SUPPORTED_REGIONS", "ka, mh")

        config = ZKSettings()

        assert config.age_timeout_seconds == 5
        assert config.supported_regions_list == ["KA", "MH"]

    def test_challenge_defaults(self):
        config = ChallengeSettings()

        assert config.default_ttl_seconds == 300
        assert (config.min_ttl_seconds, config.max_ttl_seconds) == (1, 86400)
        assert config.encoding_version == "1.0"

    def test_region_codes_must_be_two_letters(self, monkeypatch):
        monkeypatch.setenv("ZK_SUPPORTED_REGIONS", "KA,Karnataka")

        with pytest.raises(ValidationError, match="KARNATAKA"):
            ZKSettings()

    def test_default_ttl_within_bounds(self, monkeypatch):
        monkeypatch.setenv("CHALLENGE_MAX_TTL_SECONDS", "60")

        with pytest.raises(ValidationError):
            ChallengeSettings()

    def test_log_level_case_insensitive(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "debug")
        assert Settings().log_level is LogLevel.DEBUG

    def test_testing_environment(self):
        settings = Settings()
        assert settings.environment is Environment.TESTING
        assert settings.is_testing
        assert not settings.is_production


class TestLogging:
    """Tests for structlog setup and redaction."""

    def test_identity_and_secrets_redacted(self):
        event = redact_attributes(
            None,
            "info",
            {
                "event": "credential_parsed",
                "reference_id": "123456789012",
                "dob": "1995-01-01",
                "nonce": "abc",
                "region": "KA",
                "verifier_name": "Example App",
                "context": {"api_key": "k", "kind": "age"},
                "batch": [{"name": "Asha Rao", "kind": "region"}],
            },
        )

        assert event["event"] == "credential_parsed"
        assert event["reference_id"] == REDACTED
        assert event["dob"] == REDACTED
        assert event["nonce"] == REDACTED
        assert event["region"] == "KA"
        assert event["verifier_name"] == "Example App"
        assert event["context"] == {"api_key": REDACTED, "kind": "age"}
        assert event["batch"] == [{"name": REDACTED, "kind": "region"}]

    def test_custom_redactor(self):
        redactor = AttributeRedactor(secret_markers=(), identity_fields={"scope"})

        assert redactor.is_sensitive("Scope")
        assert not redactor.is_sensitive("nonce")

    @pytest.mark.parametrize("json_logs", [True, False])
    def test_setup_and_log(self, json_logs, capsys):
        setup_logging(log_level="INFO", json_logs=json_logs, service_name="test")
        bind_context(challenge_id="c-1")
        try:
            get_logger("tests").info("challenge_issued", kind="age", nonce="secret-nonce")
        finally:
            clear_context()

        output = capsys.readouterr().out
        assert "challenge_issued" in output
        assert "c-1" in output
        assert "secret-nonce" not in output
