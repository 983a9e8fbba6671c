"""
CLI, settings file and console logger tests.
"""
import io
import json
import os
import subprocess
import sys

import pytest
import yaml
from click.testing import CliRunner
from rich.console import Console

from topomap.cli import cli, scan
from topomap.config import ConfigError, Settings, load_settings
from topomap.logger import ConsoleLogger, Verbosity

FIXTURES = os.path.join(os.path.dirname(__file__), "fixtures")
SHOP = os.path.join(FIXTURES, "shop")
BAD_YAMLS = os.path.join(FIXTURES, "bad_yamls")
REPO_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


def test_module_execution():
    """Test that 'python -m topomap' works."""
    result = subprocess.run(
        [sys.executable, "-m", "topomap", "--help"],
        capture_output=True,
        text=True,
        cwd=REPO_ROOT,
    )
    assert result.returncode == 0
    assert "topomap" in result.stdout
    assert "scan" in result.stdout


class TestScanCommand:
    @pytest.fixture(autouse=True)
    def _workdir(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        self.tmp_path = tmp_path

    def setup_method(self):
        self.runner = CliRunner()

    def _policies(self, args):
        out = self.tmp_path / "policies.yaml"
        result = self.runner.invoke(scan, [SHOP, "-q", "--netpols", "--format", "yaml", "-o", str(out)] + args)
        assert result.exit_code == 0, result.output
        return yaml.safe_load(out.read_text())

    @staticmethod
    def _dns_ports(policy_list):
        ports = set()
        for item in policy_list["items"]:
            for rule in item["spec"]["egress"]:
                if "to" not in rule:
                    ports.update(p["port"] for p in rule["ports"])
        return ports

    def test_json_report_to_file(self):
        out = self.tmp_path / "report.json"
        result = self.runner.invoke(scan, [SHOP, "-q", "-o", str(out)])
        assert result.exit_code == 0, result.output
        data = json.loads(out.read_text(encoding="utf-8"))
        assert data["summary"]["connections"] == 6
        assert data["errors"] == []

    def test_report_is_written_with_lf(self):
        out = self.tmp_path / "report.md"
        result = self.runner.invoke(scan, [SHOP, "-q", "--format", "markdown", "-o", str(out)])
        assert result.exit_code == 0
        content = out.read_bytes()
        assert b"\r\n" not in content
        assert b"```mermaid" in content

    def test_report_to_stdout(self):
        result = self.runner.invoke(cli, ["scan", SHOP, "-q", "--format", "yaml"])
        assert result.exit_code == 0
        assert "connections:" in result.output

    def test_netpols(self):
        data = self._policies([])
        assert data["kind"] == "NetworkPolicyList"
        assert len(data["items"]) == 7
        assert self._dns_ports(data) == {53}

    def test_dns_port_option(self):
        assert self._dns_ports(self._policies(["--dns-port", "1053"])) == {1053}

    def test_settings_file_in_working_directory(self):
        (self.tmp_path / "topomap.yaml").write_text("dns_port: 5353\n")
        assert self._dns_ports(self._policies([])) == {5353}
        # the command line wins
        assert self._dns_ports(self._policies(["--dns-port", "1053"])) == {1053}

    def test_expose_routes_externally(self):
        data = self._policies(["--expose-routes-externally"])
        checkout = next(p for p in data["items"] if p["metadata"]["name"] == "checkout-netpol")
        assert {"ports": [{"port": 5050, "protocol": "TCP"}]} in checkout["spec"]["ingress"]

    def test_netpols_need_json_or_yaml(self):
        result = self.runner.invoke(scan, [SHOP, "--netpols", "--format", "markdown"])
        assert result.exit_code == 2

    def test_quiet_and_verbose_conflict(self):
        result = self.runner.invoke(scan, [SHOP, "-q", "-v"])
        assert result.exit_code == 2

    def test_missing_path_is_fatal(self):
        result = self.runner.invoke(scan, [str(self.tmp_path / "missing"), "-q"])
        assert result.exit_code == 2

    def test_partial_results_exit_zero(self):
        out = self.tmp_path / "report.json"
        result = self.runner.invoke(scan, [BAD_YAMLS, "-q", "-o", str(out)])
        assert result.exit_code == 0
        assert len(json.loads(out.read_text())["errors"]) == 6

    def test_strict_mode(self):
        result = self.runner.invoke(scan, [BAD_YAMLS, "-q", "--strict", "--summary"])
        assert result.exit_code == 1

    def test_fail_fast(self):
        result = self.runner.invoke(scan, [BAD_YAMLS, "-q", "--fail-fast"])
        assert result.exit_code == 2

    def test_summary_only(self):
        result = self.runner.invoke(scan, [SHOP, "-q", "--summary", "--no-color"])
        assert result.exit_code == 0
        assert '"connections"' not in result.output

    def test_bad_settings_file(self):
        bad = self.tmp_path / "bad.yaml"
        bad.write_text("dns_port: 0\n")
        result = self.runner.invoke(scan, [SHOP, "-q", "--config", str(bad)])
        assert result.exit_code == 2

    def test_missing_settings_file(self):
        result = self.runner.invoke(scan, [SHOP, "-q", "--config", str(self.tmp_path / "none.yaml")])
        assert result.exit_code == 2


class TestSettings:
    def test_defaults_without_file(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        assert load_settings() == Settings()

    def test_values(self, tmp_path):
        path = tmp_path / "topomap.yaml"
        path.write_text(
            "fail_fast: true\n"
            "dns_port: 5353\n"
            "expose_routes_externally: true\n"
            "verbosity: high\n"
        )
        settings = load_settings(str(path))
        assert settings.fail_fast
        assert settings.dns_port == 5353
        assert settings.expose_routes_externally
        assert settings.verbosity == Verbosity.HIGH

    def test_empty_file(self, tmp_path):
        path = tmp_path / "topomap.yaml"
        path.write_text("")
        assert load_settings(str(path)) == Settings()

    def test_error_names_the_setting(self, tmp_path):
        path = tmp_path / "topomap.yaml"
        path.write_text("dns_port: 70000\n")
        with pytest.raises(ConfigError, match="dns_port"):
            load_settings(str(path))

    def test_settings_object_is_validated(self):
        assert Settings(verbosity="low").verbosity == Verbosity.LOW
        with pytest.raises(ValueError):
            Settings(dns_port=0)

    @pytest.mark.parametrize("content", [
        "unknown_key: 1\n",
        "fail_fast: maybe\n",
        "dns_port: 70000\n",
        "dns_port: true\n",
        "verbosity: loud\n",
        "- a\n- b\n",
        "dns_port: [53\n",
    ])
    def test_invalid(self, tmp_path, content):
        path = tmp_path / "topomap.yaml"
        path.write_text(content)
        with pytest.raises(ConfigError):
            load_settings(str(path))


class TestConsoleLogger:
    def setup_method(self):
        self.buf = io.StringIO()
        self.console = Console(file=self.buf, width=200)

    def test_medium_verbosity(self):
        logger = ConsoleLogger(console=self.console)
        logger.info("scanned")
        logger.warning("configmap missing")
        logger.error("cannot read")
        out = self.buf.getvalue()
        assert "scanned" not in out
        assert "Warning: configmap missing" in out
        assert "Error: cannot read" in out

    def test_low_verbosity(self):
        logger = ConsoleLogger(verbosity=Verbosity.LOW, console=self.console)
        logger.warning("configmap missing")
        logger.error("cannot read")
        out = self.buf.getvalue()
        assert "configmap missing" not in out
        assert "cannot read" in out

    def test_high_verbosity(self):
        logger = ConsoleLogger(verbosity=Verbosity.HIGH, console=self.console)
        logger.debug("walking")
        logger.info("scanned")
        out = self.buf.getvalue()
        assert "Debug: walking" in out
        assert "Info: scanned" in out

    def test_markup_in_messages_is_printed_literally(self):
        ConsoleLogger(console=self.console).error("bad value [bold]x[/bold]")
        assert "[bold]x[/bold]" in self.buf.getvalue()
