"""
Kernel key cache cleanup.

The ceph kernel client caches the secret used for a mount as a `ceph` key in
the user keyring. After unmounting, the key is unlinked so that a later mount
under a different identity does not pick up a stale secret.
"""

from __future__ import annotations

import ctypes
import logging
import platform
import sys
from abc import ABC, abstractmethod
from typing import Optional

logger = logging.getLogger(__name__)

KEYCTL_UNLINK = 9
KEYCTL_SEARCH = 10
KEY_SPEC_USER_KEYRING = -4

# keyctl(2) syscall numbers
SYSCALL_KEYCTL = {
    "x86_64": 250,
    "amd64": 250,
    "aarch64": 219,
    "arm64": 219,
    "i386": 288,
    "i686": 288,
}


class Keyring(ABC):
    """Minimal keyring capability: find a key and drop it."""

    @abstractmethod
    def search(self, key_type: str, description: str) -> Optional[int]:
        """Return the id of a key in the user keyring, or None."""
        pass

    @abstractmethod
    def unlink(self, key_id: int) -> bool:
        """Unlink a key from the user keyring; True on success."""
        pass


class NullKeyring(Keyring):
    """Used where the host has no kernel keyring; finds nothing."""

    def search(self, key_type: str, description: str) -> Optional[int]:
        return None

    def unlink(self, key_id: int) -> bool:
        return False


class SyscallKeyring(Keyring):
    """keyctl(2) through libc `syscall()`, scoped to the user keyring."""

    def __init__(self, syscall_nr: int, libc: Optional[ctypes.CDLL] = None):
        self.syscall_nr = syscall_nr
        self._libc = libc or ctypes.CDLL(None, use_errno=True)
        self._libc.syscall.restype = ctypes.c_long

    def _keyctl(self, cmd: int, *args) -> int:
        argv = [ctypes.c_long(cmd)]
        for arg in args:
            argv.append(ctypes.c_char_p(arg) if isinstance(arg, bytes) else ctypes.c_long(arg))
        ret = self._libc.syscall(ctypes.c_long(self.syscall_nr), *argv)
        if ret < 0:
            raise OSError(ctypes.get_errno(), f"keyctl command {cmd} failed")
        return ret

    def search(self, key_type: str, description: str) -> Optional[int]:
        try:
            return self._keyctl(
                KEYCTL_SEARCH, KEY_SPEC_USER_KEYRING, key_type.encode(), description.encode(), 0
            )
        except OSError as e:
            logger.debug("keyctl search for %s/%s failed: %s", key_type, description, e)
            return None

    def unlink(self, key_id: int) -> bool:
        try:
            self._keyctl(KEYCTL_UNLINK, key_id, KEY_SPEC_USER_KEYRING)
            return True
        except OSError as e:
            logger.debug("keyctl unlink of key %d failed: %s", key_id, e)
            return False


def default_keyring() -> Keyring:
    """Pick the keyring backend supported by this host."""
    syscall_nr = SYSCALL_KEYCTL.get(platform.machine().lower())
    if not sys.platform.startswith("linux") or syscall_nr is None:
        logger.info("Kernel keyring not supported on %s/%s", sys.platform, platform.machine())
        return NullKeyring()
    try:
        return SyscallKeyring(syscall_nr)
    except OSError as e:
        logger.warning("Cannot load libc for keyctl, key cleanup disabled: %s", e)
        return NullKeyring()


class KeyCleaner:
    """Looks up and drops cached ceph keys. Never raises."""

    def __init__(self, keyring: Optional[Keyring] = None, key_type: str = "ceph"):
        self.keyring = keyring if keyring is not None else default_keyring()
        self.key_type = key_type

    def is_key_present(self, key_name: str) -> bool:
        key_id = self.keyring.search(self.key_type, key_name)
        if key_id is None:
            logger.debug("No %s key found for %s", self.key_type, key_name)
            return False
        logger.debug("Found %s key %s with id %d", self.key_type, key_name, key_id)
        return True

    def unlink_key(self, key_name: str) -> bool:
        key_id = self.keyring.search(self.key_type, key_name)
        if key_id is None:
            logger.info("No cached %s key for %s to unlink", self.key_type, key_name)
            return False
        if not self.keyring.unlink(key_id):
            logger.warning("Failed to unlink %s key %s (id %d)", self.key_type, key_name, key_id)
            return False
        logger.debug("Unlinked %s key %s (id %d)", self.key_type, key_name, key_id)
        return True
