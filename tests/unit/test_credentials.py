"""
Unit tests for credential and mount-source resolution.
"""

from unittest.mock import patch

import pytest

from cephshare.exceptions import ConflictingCredentials, SecretFileError
from cephshare.lib.credentials import (
    CephDefaults,
    MountSpec,
    add_share_colon,
    build_mount_spec,
    merge_mount_options,
    resolve_name,
    resolve_secret,
    resolve_source,
)

DEFAULTS = CephDefaults(username="admin", password="defaultkey", endpoint="mon1", port="6789")


class TestResolveSource:
    """Tests for resolve_source."""

    @pytest.mark.unit
    def test_addr_list_with_default_port(self):
        options = {"addr": "10.0.0.1,10.0.0.2", "device": "/data"}

        assert resolve_source("vol", options, DEFAULTS) == "10.0.0.1:6789,10.0.0.2:6789/data"

    @pytest.mark.unit
    def test_addr_with_port(self):
        options = {"addr": "10.0.0.1", "port": "3300", "device": ":/"}

        assert resolve_source("vol", options, DEFAULTS) == "10.0.0.1:3300:/"

    @pytest.mark.unit
    def test_addr_ignores_daemon_port(self):
        defaults = CephDefaults(endpoint="mon1", port="3300")

        assert resolve_source("vol", {"addr": "10.0.0.1"}, defaults) == "10.0.0.1:6789"

    @pytest.mark.unit
    def test_share_option(self):
        assert resolve_source("vol", {"share": "mon2:/exports/a"}, DEFAULTS) == "mon2:/exports/a"

    @pytest.mark.unit
    def test_name_with_host(self):
        assert resolve_source("mon3/shares/a", {}, DEFAULTS) == "mon3:6789:/shares/a"

    @pytest.mark.unit
    def test_bare_name_uses_default_endpoint(self):
        assert resolve_source("vol", {}, DEFAULTS) == "mon1:6789:/vol"


class TestResolveSecret:
    """Tests for resolve_secret."""

    @pytest.mark.unit
    def test_conflicting(self):
        with patch("cephshare.lib.credentials.read_secret_file") as mock_read:
            with pytest.raises(ConflictingCredentials):
                resolve_secret({"secret": "abc", "secretfile": "/path"}, DEFAULTS)
        mock_read.assert_not_called()

    @pytest.mark.unit
    def test_inline_secret(self):
        assert resolve_secret({"secret": "abc"}, DEFAULTS) == "abc"

    @pytest.mark.unit
    def test_secret_file_is_trimmed(self, temp_dir):
        secret_file = temp_dir / "client.secret"
        secret_file.write_text("  filekey\n", encoding="utf-8")

        assert resolve_secret({"secretfile": str(secret_file)}, DEFAULTS) == "filekey"

    @pytest.mark.unit
    def test_unreadable_secret_file(self, temp_dir):
        with pytest.raises(SecretFileError, match="Failed to read secret file"):
            resolve_secret({"secretfile": str(temp_dir / "missing")}, DEFAULTS)

    @pytest.mark.unit
    def test_default_password(self):
        assert resolve_secret({}, DEFAULTS) == "defaultkey"


class TestMergeMountOptions:
    """Tests for merge_mount_options."""

    @pytest.mark.unit
    def test_call_wins(self):
        assert merge_mount_options("noatime,rsize=1024", "rsize=4096,ro") == "noatime,rsize=4096,ro"

    @pytest.mark.unit
    def test_empty(self):
        assert merge_mount_options("", "") == ""


class TestResolveName:
    """Tests for the inline share syntax."""

    @pytest.mark.unit
    def test_plain_name(self):
        assert resolve_name("vol1") == ("vol1", None)

    @pytest.mark.unit
    def test_inline_share(self):
        name, opts = resolve_name("mon1/exports/a#vol1")

        assert name == "vol1"
        assert opts == {"share": "mon1:/exports/a"}

    @pytest.mark.unit
    def test_add_share_colon(self):
        assert add_share_colon("mon1:/a") == "mon1:/a"
        assert add_share_colon("mon1/a/b") == "mon1:/a/b"


class TestBuildMountSpec:
    """Tests for build_mount_spec."""

    @pytest.mark.unit
    def test_defaults(self):
        defaults = CephDefaults(
            username="admin", password="defaultkey", context="context=system_u:object_r:tmp_t:s0",
            endpoint="mon1", options="noatime",
        )

        spec = build_mount_spec("vol", "/mnt/vol", {}, defaults)

        assert spec.source == "mon1:6789:/vol"
        assert spec.destination == "/mnt/vol"
        assert spec.option_string == "context=system_u:object_r:tmp_t:s0,name=admin,secret=defaultkey,noatime"
        assert spec.secret == "defaultkey"

    @pytest.mark.unit
    def test_overrides(self):
        options = {"name": "app", "secret": "appkey", "addr": "10.0.0.1", "device": ":/app", "cephopts": "ro"}

        spec = build_mount_spec("vol", "/mnt/vol", options, DEFAULTS)

        assert spec.source == "10.0.0.1:6789:/app"
        assert spec.option_string == "name=app,secret=appkey,ro"

    @pytest.mark.unit
    def test_no_credentials(self):
        spec = build_mount_spec("vol", "/mnt/vol", {}, CephDefaults(endpoint="mon1"))

        assert spec.options == []
        assert spec.option_string == ""

    @pytest.mark.unit
    def test_redact(self):
        spec = MountSpec(source="mon1:/", destination="/mnt/vol", options=["secret=abc"], secret="abc")

        assert spec.redact("mount -o secret=abc failed") == "mount -o secret=**** failed"
        assert MountSpec(source="s", destination="d").redact("text") == "text"
