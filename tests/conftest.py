"""
Pytest configuration and fixtures.
"""

import shutil
import tempfile
from pathlib import Path
from unittest.mock import patch

import pytest

from cephshare.driver import CephDriver
from cephshare.lib.config import CephShareConfig
from cephshare.lib.keyring import KeyCleaner, Keyring


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests without external processes")
    config.addinivalue_line("markers", "integration: tests through the HTTP plugin API or the CLI")


class FakeKeyring(Keyring):
    """In-memory keyring keyed by (type, description)."""

    def __init__(self, keys=None):
        self.keys = dict(keys or {})
        self.unlinked = []

    def search(self, key_type, description):
        return self.keys.get((key_type, description))

    def unlink(self, key_id):
        for key, value in list(self.keys.items()):
            if value == key_id:
                del self.keys[key]
                self.unlinked.append(key_id)
                return True
        return False


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    temp_path = tempfile.mkdtemp()
    yield Path(temp_path)
    shutil.rmtree(temp_path)


@pytest.fixture
def mock_subprocess():
    """Mock subprocess.run for testing."""
    with patch("subprocess.run") as mock:
        yield mock


@pytest.fixture
def fake_keyring():
    return FakeKeyring({("ceph", "client.cephFS"): 101})


@pytest.fixture
def config(temp_dir):
    """Daemon config rooted in a temporary directory."""
    return CephShareConfig(
        username="admin",
        password="s3cr3t",
        endpoint="mon1",
        root=str(temp_dir / "volumes"),
        refs_dir=str(temp_dir),
        refs_script=str(temp_dir / "build_volume_refs.sh"),
    )


@pytest.fixture
def mock_mount():
    """Mock the mount/umount invocations used by the driver."""
    with patch("cephshare.driver.mount_volume") as mount, patch("cephshare.driver.unmount_volume") as umount:
        yield mount, umount


@pytest.fixture
def driver(config, fake_keyring, mock_mount):
    """Driver with mocked mount tools and no startup reconciliation."""
    return CephDriver(config, key_cleaner=KeyCleaner(fake_keyring), reconcile=False)
