"""
Integration tests for the cephshare admin CLI.
"""

from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from cephshare.cli.cli import app


@pytest.fixture
def runner():
    return CliRunner()


class TestConfigShow:
    """Tests for config show."""

    @pytest.mark.integration
    def test_password_is_masked(self, runner, monkeypatch, temp_dir):
        config_path = temp_dir / "cephshare.conf"
        config_path.write_text("[ceph]\nusername = app\npassword = topsecret\n", encoding="utf-8")
        monkeypatch.setenv("CEPHSHARE_CONFIG_PATH", str(config_path))
        monkeypatch.delenv("CEPHSHARE_PASSWORD", raising=False)

        result = runner.invoke(app, ["config", "show"])

        assert result.exit_code == 0
        assert "username = app" in result.output
        assert "password = ****" in result.output
        assert "topsecret" not in result.output


class TestRefsShow:
    """Tests for refs show."""

    @pytest.mark.integration
    def test_show(self, runner, temp_dir, monkeypatch):
        monkeypatch.setenv("CEPHSHARE_ROOT", "/mnt/cephshare")
        refs = temp_dir / "refs"
        refs.write_text("myvol 3\nidle 0\n", encoding="utf-8")

        result = runner.invoke(app, ["refs", "show", "--file", str(refs)])

        assert result.exit_code == 0
        assert "myvol references=3 mount=/mnt/cephshare/myvol" in result.output
        assert "idle" not in result.output

    @pytest.mark.integration
    def test_show_empty(self, runner, temp_dir):
        refs = temp_dir / "refs"
        refs.write_text("", encoding="utf-8")

        result = runner.invoke(app, ["refs", "show", "--file", str(refs)])

        assert result.exit_code == 0
        assert "No volume references found" in result.output

    @pytest.mark.integration
    def test_show_malformed(self, runner, temp_dir):
        refs = temp_dir / "refs"
        refs.write_text("myvol many\n", encoding="utf-8")

        result = runner.invoke(app, ["refs", "show", "--file", str(refs)])

        assert result.exit_code == 1
        assert "invalid reference count" in result.output


class TestKeyring:
    """Tests for keyring commands."""

    @pytest.mark.integration
    @patch("cephshare.cli.commands.keyring.KeyCleaner")
    def test_status(self, mock_cleaner, runner):
        mock_cleaner.return_value.is_key_present.return_value = True

        result = runner.invoke(app, ["keyring", "status", "client.app"])

        assert result.exit_code == 0
        assert "Key client.app is present" in result.output
        mock_cleaner.return_value.is_key_present.assert_called_once_with("client.app")

    @pytest.mark.integration
    @patch("cephshare.cli.commands.keyring.KeyCleaner")
    def test_unlink_default_key(self, mock_cleaner, runner, monkeypatch, temp_dir):
        monkeypatch.setenv("CEPHSHARE_CONFIG_PATH", str(temp_dir / "missing.conf"))
        mock_cleaner.return_value.unlink_key.return_value = True

        result = runner.invoke(app, ["keyring", "unlink"])

        assert result.exit_code == 0
        mock_cleaner.return_value.unlink_key.assert_called_once_with("client.cephFS")

    @pytest.mark.integration
    @patch("cephshare.cli.commands.keyring.KeyCleaner")
    def test_unlink_missing(self, mock_cleaner, runner):
        mock_cleaner.return_value.unlink_key.return_value = False

        result = runner.invoke(app, ["keyring", "unlink", "client.app"])

        assert result.exit_code == 1
