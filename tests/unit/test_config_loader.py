"""Tests for configuration loading."""

import pytest

from certsync.config_loader import (
    DEFAULT_AWS_REGION,
    DEFAULT_PARAMETER_NAME,
    load_config,
    parse_config,
)
from certsync.errors import ConfigurationError


def minimal_config(**overrides):
    data = {
        "cloudflare": {"zone_id": "zone-123", "origin_ca_key": "v1.0-origin-key"},
        "certificate": {"hostnames": ["*.example.com", "example.com"]},
    }
    data.update(overrides)
    return data


class TestParseConfig:
    """Tests for parse_config."""

    def test_defaults(self):
        config = parse_config(minimal_config())

        assert config.cloudflare.zone_id == "zone-123"
        assert config.aws.region == DEFAULT_AWS_REGION
        assert config.aws.profile is None
        assert config.certificate.renewal_threshold_days == 90
        assert config.certificate.validity_days == 365
        assert config.certificate.parameter_name == DEFAULT_PARAMETER_NAME
        assert config.certificate.wildcard_hostname == "*.example.com"
        assert config.custom_domain.proxied is True
        assert config.custom_domain.ttl == 1
        assert config.settings.dry_run is False
        assert config.settings.timeout_seconds is None

    def test_env_var_expansion(self, monkeypatch):
        monkeypatch.setenv("CF_ZONE", "zone-from-env")
        monkeypatch.setenv("CF_TOKEN", "token-from-env")

        config = parse_config(minimal_config(cloudflare={
            "zone_id": "${CF_ZONE}",
            "api_token": "${CF_TOKEN}",
        }))

        assert config.cloudflare.zone_id == "zone-from-env"
        assert config.cloudflare.api_token == "token-from-env"
        assert config.cloudflare.origin_ca_key is None

    def test_unset_env_var_treated_as_missing(self, monkeypatch):
        monkeypatch.delenv("CF_ORIGIN_KEY_UNSET", raising=False)

        config = parse_config(minimal_config(cloudflare={
            "zone_id": "zone-123",
            "origin_ca_key": "${CF_ORIGIN_KEY_UNSET}",
            "api_token": "dns-token-xyz",
        }))

        assert config.cloudflare.origin_ca_key is None

    def test_missing_cloudflare_section(self):
        with pytest.raises(ConfigurationError):
            parse_config({"certificate": {"hostnames": ["*.example.com"]}})

    def test_missing_zone(self):
        with pytest.raises(ConfigurationError, match="zone_id"):
            parse_config(minimal_config(cloudflare={"origin_ca_key": "origin-key-xyz"}))

    def test_missing_credentials(self):
        with pytest.raises(ConfigurationError, match="credentials"):
            parse_config(minimal_config(cloudflare={"zone_id": "zone-123"}))

    def test_both_credentials_allowed(self):
        config = parse_config(minimal_config(cloudflare={
            "zone_id": "zone-123",
            "origin_ca_key": "origin-key-xyz",
            "api_token": "dns-token-xyz",
        }))

        assert config.cloudflare.origin_ca_key == "origin-key-xyz"
        assert config.cloudflare.api_token == "dns-token-xyz"

    def test_credentials_masked_in_repr(self):
        config = parse_config(minimal_config())
        assert "v1.0-origin-key" not in repr(config.cloudflare)

    def test_hostnames_from_comma_separated_string(self):
        config = parse_config(minimal_config(certificate={
            "hostnames": "*.example.com, example.com",
        }))

        assert config.certificate.hostnames == ["*.example.com", "example.com"]

    def test_requires_wildcard_hostname(self):
        with pytest.raises(ConfigurationError, match="wildcard"):
            parse_config(minimal_config(certificate={"hostnames": ["example.com"]}))

    def test_invalid_validity(self):
        with pytest.raises(ConfigurationError, match="validity_days"):
            parse_config(minimal_config(certificate={
                "hostnames": ["*.example.com"],
                "validity_days": 100,
            }))

    def test_relative_parameter_name(self):
        with pytest.raises(ConfigurationError, match="parameter_name"):
            parse_config(minimal_config(certificate={
                "hostnames": ["*.example.com"],
                "parameter_name": "certificate-arn",
            }))

    def test_invalid_ttl(self):
        with pytest.raises(ConfigurationError, match="ttl"):
            parse_config(minimal_config(custom_domain={"ttl": 30}))

    def test_invalid_max_attempts(self):
        with pytest.raises(ConfigurationError, match="max_attempts"):
            parse_config(minimal_config(settings={"max_attempts": 0}))


class TestLoadConfig:
    """Tests for load_config."""

    def test_loads_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(
            "cloudflare:\n"
            "  zone_id: zone-123\n"
            "  api_token: dns-token-xyz\n"
            "aws:\n"
            "  region: us-east-1\n"
            "  profile: prod\n"
            "certificate:\n"
            "  hostnames:\n"
            "    - \"*.example.com\"\n"
            "    - example.com\n"
            "  renewal_threshold_days: 30\n"
        )

        config = load_config(str(path))

        assert config.aws.region == "us-east-1"
        assert config.aws.profile == "prod"
        assert config.certificate.renewal_threshold_days == 30

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="not found"):
            load_config(str(tmp_path / "missing.yaml"))

    def test_wrong_extension(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text("{}")

        with pytest.raises(ConfigurationError, match="YAML"):
            load_config(str(path))

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("cloudflare: [unclosed\n")

        with pytest.raises(ConfigurationError, match="Invalid YAML"):
            load_config(str(path))

    def test_empty_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("")

        with pytest.raises(ConfigurationError, match="empty"):
            load_config(str(path))
