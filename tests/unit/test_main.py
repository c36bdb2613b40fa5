"""Tests for the command-line entry point."""

from unittest.mock import patch

import main
from certsync.errors import ApiError, ConfigurationError
from certsync.orchestrator import CertificateResult

CONFIG_YAML = (
    "cloudflare:\n"
    "  zone_id: zone-123\n"
    "  origin_ca_key: origin-key-abc\n"
    "  api_token: dns-token-abc\n"
    "certificate:\n"
    "  hostnames:\n"
    "    - \"*.example.com\"\n"
    "    - example.com\n"
)


def write_config(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(CONFIG_YAML)
    return str(path)


class TestMain:
    """Tests for main() exit codes and overrides."""

    @patch("main.run_certificate_task")
    def test_success(self, mock_run, tmp_path, capsys):
        mock_run.return_value = CertificateResult(success=True, renewed=False, certificate_id="c1")

        with patch("sys.argv", ["main.py", "--config", write_config(tmp_path), "--json-summary", "--no-color"]):
            exit_code = main.main()

        assert exit_code == 0
        assert '"certificateId": "c1"' in capsys.readouterr().out

    @patch("main.run_certificate_task")
    def test_not_in_acm_fails(self, mock_run, tmp_path):
        mock_run.return_value = CertificateResult(success=False, error="certificate-not-in-acm")

        with patch("sys.argv", ["main.py", "--config", write_config(tmp_path), "--no-color"]):
            assert main.main() == 1

    @patch("main.run_certificate_task")
    def test_overrides_applied(self, mock_run, tmp_path):
        mock_run.return_value = CertificateResult(success=True)
        argv = [
            "main.py", "--config", write_config(tmp_path), "--no-color",
            "--dry-run", "--force-update", "--threshold", "30",
            "--aws-region", "us-east-1", "--profile", "prod", "--timeout", "120",
        ]

        with patch("sys.argv", argv):
            main.main()

        config = mock_run.call_args.args[0]
        deadline = mock_run.call_args.args[1]
        assert config.settings.dry_run is True
        assert config.settings.force_update is True
        assert config.certificate.renewal_threshold_days == 30
        assert config.aws.region == "us-east-1"
        assert config.aws.profile == "prod"
        assert deadline.seconds == 120

    def test_configuration_error(self, tmp_path):
        missing = str(tmp_path / "missing.yaml")

        with patch("sys.argv", ["main.py", "--config", missing, "--no-color"]):
            assert main.main() == 2

    @patch("main.run_certificate_task", side_effect=ConfigurationError("No valid Cloudflare authentication"))
    def test_client_configuration_error(self, _mock_run, tmp_path):
        with patch("sys.argv", ["main.py", "--config", write_config(tmp_path), "--no-color"]):
            assert main.main() == 2

    @patch("main.run_certificate_task", side_effect=ApiError("quota exceeded", status_code=400))
    def test_api_error(self, _mock_run, tmp_path):
        with patch("sys.argv", ["main.py", "--config", write_config(tmp_path), "--no-color"]):
            assert main.main() == 1

    @patch("main.run_dns_task")
    def test_dns_task(self, mock_run, tmp_path):
        from certsync.custom_domain import DnsSetupResult

        mock_run.return_value = DnsSetupResult(True, "api.example.com", "target.example.net", "created")
        argv = [
            "main.py", "--task", "dns", "--config", write_config(tmp_path), "--no-color",
            "--domain-name", "api.example.com", "--target", "target.example.net",
        ]

        with patch("sys.argv", argv):
            assert main.main() == 0

        config = mock_run.call_args.args[0]
        assert config.custom_domain.domain_name == "api.example.com"
        assert config.custom_domain.target == "target.example.net"
