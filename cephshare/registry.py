"""
Reference-counted registry of CephFS mounts.

One record per volume name. Records created by an explicit create are
"managed" and survive until removed; records created by a bare mount are
dropped once their last consumer unmounts.
"""

from __future__ import annotations

import logging
import os
import subprocess
import threading
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from cephshare.exceptions import ReconciliationDegraded, VolumeInUse

logger = logging.getLogger(__name__)

REFS_FILE_PREFIX = "docker-volume-refs-"


@dataclass
class MountRecord:
    name: str
    hostdir: str
    connections: int = 0
    options: Dict[str, str] = field(default_factory=dict)
    managed: bool = False


def mountpoint(root: str, name: str) -> str:
    return os.path.join(root, name)


def refs_file_path(refs_dir: str, driver_kind: str) -> str:
    return os.path.join(refs_dir, f"{REFS_FILE_PREFIX}{driver_kind}")


def parse_references(text: str) -> List[Tuple[str, int]]:
    """
    Parse a reference file: one `<name> <referenceCount>` pair per line.

    Raises:
        ReconciliationDegraded: On the first malformed line
    """
    refs: List[Tuple[str, int]] = []
    for lineno, line in enumerate(text.splitlines(), start=1):
        parts = line.split()
        if not parts:
            continue
        if len(parts) != 2:
            raise ReconciliationDegraded(f"line {lineno}: expected '<name> <count>', got {line!r}")
        try:
            count = int(parts[1])
        except ValueError:
            raise ReconciliationDegraded(f"line {lineno}: invalid reference count {parts[1]!r}")
        if count < 0:
            raise ReconciliationDegraded(f"line {lineno}: negative reference count {count}")
        refs.append((parts[0], count))
    return refs


class MountRegistry:
    """In-memory map of volume name to MountRecord guarded by one lock."""

    def __init__(self):
        self._mounts: Dict[str, MountRecord] = {}
        self._lock = threading.RLock()

    def has_mount(self, name: str) -> bool:
        with self._lock:
            return name in self._mounts

    def has_options(self, name: str) -> bool:
        with self._lock:
            record = self._mounts.get(name)
            return record is not None and bool(record.options)

    def has_option(self, name: str, key: str) -> bool:
        with self._lock:
            return self.has_options(name) and key in self._mounts[name].options

    def get_options(self, name: str) -> Dict[str, str]:
        with self._lock:
            record = self._mounts.get(name)
            return dict(record.options) if record is not None else {}

    def get_option(self, name: str, key: str) -> str:
        with self._lock:
            if self.has_option(name, key):
                return self._mounts[name].options[key]
            return ""

    def get_option_as_bool(self, name: str, key: str) -> bool:
        return self.get_option(name, key).lower() in ("yes", "true")

    def get_path(self, name: str) -> Optional[str]:
        with self._lock:
            record = self._mounts.get(name)
            return record.hostdir if record is not None else None

    def is_managed(self, name: str) -> bool:
        with self._lock:
            record = self._mounts.get(name)
            return record is not None and record.managed

    def is_active_mount(self, name: str) -> bool:
        with self._lock:
            record = self._mounts.get(name)
            return record is not None and record.connections > 0

    def count(self, name: str) -> int:
        with self._lock:
            record = self._mounts.get(name)
            return record.connections if record is not None else 0

    def add(self, name: str, hostdir: str) -> None:
        """Register one more consumer, creating an unmanaged record if needed."""
        with self._lock:
            if name in self._mounts:
                self.increment(name)
            else:
                self._mounts[name] = MountRecord(name=name, hostdir=hostdir, connections=1, managed=False)

    def create(self, name: str, hostdir: str, options: Optional[Dict[str, str]] = None) -> MountRecord:
        """
        Register a managed volume.

        An active record only gets its options replaced; anything else is
        (re)created with zero connections.
        """
        with self._lock:
            record = self._mounts.get(name)
            if record is not None and record.connections > 0:
                record.options = dict(options or {})
                return record
            record = MountRecord(name=name, hostdir=hostdir, connections=0, options=dict(options or {}), managed=True)
            self._mounts[name] = record
            return record

    def increment(self, name: str) -> int:
        with self._lock:
            record = self._mounts.get(name)
            if record is None:
                return 0
            record.connections += 1
            return record.connections

    def decrement(self, name: str) -> int:
        with self._lock:
            record = self._mounts.get(name)
            if record is None:
                return 0
            if record.connections > 0:
                record.connections -= 1
            return record.connections

    def delete(self, name: str) -> None:
        """
        Remove a record.

        Raises:
            VolumeInUse: If the volume still has connections
        """
        with self._lock:
            logger.debug("Delete volume: %s, connections: %d", name, self.count(name))
            if name not in self._mounts:
                return
            if self.count(name) >= 1:
                raise VolumeInUse(f"Volume {name} is currently in use")
            del self._mounts[name]

    def delete_if_not_managed(self, name: str) -> bool:
        with self._lock:
            record = self._mounts.get(name)
            if record is None or record.connections > 0 or record.managed:
                return False
            logger.info("Removing un-managed volume %s", name)
            del self._mounts[name]
            return True

    def get_volumes(self) -> List[Tuple[str, str]]:
        with self._lock:
            return sorted((record.name, record.hostdir) for record in self._mounts.values())

    def build_references(self, root: str, driver_kind: str, script: str, refs_dir: str = "/tmp") -> int:
        """
        Seed connection counts from volumes already mounted on the host.

        Runs `<script> <driver_kind> <root>`, which writes
        `<refs_dir>/docker-volume-refs-<driver_kind>`, and adds each listed
        volume once per outstanding reference. Nothing is mounted.

        Any failure leaves the registry untouched and is only logged.

        Returns:
            Number of volumes seeded
        """
        try:
            refs = self._enumerate_references(root, driver_kind, script, refs_dir)
        except ReconciliationDegraded as e:
            logger.warning("Could not rebuild volume references, starting empty: %s", e.message)
            return 0

        seeded = 0
        with self._lock:
            for name, count in refs:
                if count <= 0:
                    continue
                logger.debug("Found existing volume in use with %d references: %s", count, name)
                for _ in range(count):
                    self.add(name, mountpoint(root, name))
                seeded += 1
        logger.info("Rebuilt references for %d %s volume(s)", seeded, driver_kind)
        return seeded

    def _enumerate_references(self, root: str, driver_kind: str, script: str, refs_dir: str) -> List[Tuple[str, int]]:
        try:
            result = subprocess.run(
                [script, driver_kind, root],
                capture_output=True,
                text=True,
                check=False
            )
        except OSError as e:
            raise ReconciliationDegraded(f"Error executing {script}: {e}")

        if result.returncode != 0:
            raise ReconciliationDegraded(f"Error executing {script}: {result.stderr.strip()}")

        path = refs_file_path(refs_dir, driver_kind)
        try:
            with open(path, "r", encoding="utf-8") as file:
                text = file.read()
        except OSError as e:
            raise ReconciliationDegraded(f"Cannot read {path}: {e}")

        return parse_references(text)
