"""
CephFS volume driver.

Sequences create/remove/mount/unmount requests against the mount registry,
the credential resolver, the mount executor and the kernel key cleaner. Every
request runs under one lock: mount and unmount of CephFS are not re-entrant
and mount point directories must not be created or removed concurrently.
"""

from __future__ import annotations

import logging
import threading
from typing import Dict, List, Optional, Tuple

from cephshare.exceptions import CephShareException, UnmountExecutionFailure, VolumeInUse, VolumeNotFound
from cephshare.lib.config import CephShareConfig, load_config
from cephshare.lib.credentials import CephDefaults, build_mount_spec, resolve_name
from cephshare.lib.keyring import KeyCleaner
from cephshare.lib.mount import create_dest, mount_volume, remove_dest, unmount_volume
from cephshare.lib.validators import validate_name
from cephshare.registry import MountRegistry, mountpoint

logger = logging.getLogger(__name__)

DRIVER_KIND = "ceph"


class CephDriver:
    """Mount lifecycle manager for CephFS volumes on this host."""

    def __init__(
        self,
        config: Optional[CephShareConfig] = None,
        registry: Optional[MountRegistry] = None,
        key_cleaner: Optional[KeyCleaner] = None,
        reconcile: bool = True,
    ):
        self.config = config or load_config()
        self.root = self.config.root
        self.defaults = CephDefaults.from_config(self.config)
        self.registry = registry if registry is not None else MountRegistry()
        self.key_cleaner = key_cleaner if key_cleaner is not None else KeyCleaner()
        self._lock = threading.Lock()

        if reconcile:
            # Rebuild any existing volume references
            self.registry.build_references(self.root, DRIVER_KIND, self.config.refs_script, self.config.refs_dir)

    def _resolve(self, name: str) -> Tuple[str, Optional[Dict[str, str]]]:
        resolved, share_opts = resolve_name(name)
        validate_name(resolved)
        return resolved, share_opts

    def create(self, name: str, options: Optional[Dict[str, str]] = None) -> None:
        """Register a managed volume with its options. Nothing is mounted."""
        logger.debug("Entering Create: name=%s, options=%s", name, sorted((options or {}).keys()))
        with self._lock:
            name, share_opts = self._resolve(name)
            opts = dict(options or {})
            if share_opts:
                opts.update(share_opts)
            self.registry.create(name, mountpoint(self.root, name), opts)
            logger.info("Created CEPH volume %s", name)

    def remove(self, name: str) -> None:
        """
        Forget a volume.

        Raises:
            VolumeInUse: If containers still hold the volume
        """
        logger.debug("Entering Remove: name=%s", name)
        with self._lock:
            name, _ = resolve_name(name)
            if self.registry.count(name) >= 1:
                raise VolumeInUse(f"Volume {name} is currently in use")
            self.registry.delete(name)
            logger.info("Removed CEPH volume %s", name)

    def mount(self, name: str, request_id: str = "") -> str:
        """
        Attach a consumer to a volume, mounting it on first use.

        Returns:
            Host path of the mount

        Raises:
            CephShareException: If the mount could not be established; the
                registry is left as it was before the call
        """
        logger.debug("Entering Mount: name=%s, id=%s", name, request_id)
        with self._lock:
            name, share_opts = self._resolve(name)
            hostdir = mountpoint(self.root, name)
            existed = self.registry.has_mount(name)

            if share_opts and not existed:
                self.registry.create(name, hostdir, share_opts)

            if self.registry.is_active_mount(name):
                logger.info("Using existing CEPH volume mount: %s", hostdir)
                self.registry.increment(name)
                return hostdir

            self.registry.add(name, hostdir)
            try:
                create_dest(hostdir)
                spec = build_mount_spec(name, hostdir, self.registry.get_options(name), self.defaults)
                logger.info("Mounting CEPH volume %s on %s", spec.source, hostdir)
                mount_volume(spec)
            except CephShareException:
                self._rollback_mount(name, existed)
                raise
            return hostdir

    def _rollback_mount(self, name: str, existed: bool) -> None:
        self.registry.decrement(name)
        if not existed:
            self.registry.delete(name)

    def unmount(self, name: str, request_id: str = "") -> None:
        """
        Detach a consumer; the last one unmounts the volume.

        Raises:
            UnmountExecutionFailure: If umount fails; the connection is kept
        """
        logger.debug("Entering Unmount: name=%s, id=%s", name, request_id)
        with self._lock:
            name, _ = resolve_name(name)
            if not self.registry.has_mount(name):
                logger.info("Volume %s is not mounted, nothing to unmount", name)
                return

            connections = self.registry.count(name)
            if connections > 1:
                logger.info("Skipping unmount for %s - in use by other containers", name)
                self.registry.decrement(name)
                return
            if connections == 0:
                logger.info("Volume %s has no active connections, nothing to unmount", name)
                return

            hostdir = self.registry.get_path(name) or mountpoint(self.root, name)
            self.registry.decrement(name)

            logger.info("Unmounting volume name %s from %s", name, hostdir)
            try:
                unmount_volume(hostdir)
            except UnmountExecutionFailure:
                # Still mounted as far as we know
                self.registry.increment(name)
                raise

            self.key_cleaner.unlink_key(self.config.key_description)
            remove_dest(hostdir, self.root)
            self.registry.delete_if_not_managed(name)

    def path(self, name: str) -> str:
        name, _ = resolve_name(name)
        return self.registry.get_path(name) or mountpoint(self.root, name)

    def get(self, name: str) -> Tuple[str, str]:
        """
        Raises:
            VolumeNotFound: If the volume is unknown
        """
        name, _ = resolve_name(name)
        hostdir = self.registry.get_path(name)
        if hostdir is None:
            raise VolumeNotFound(f"Volume {name} not found")
        return name, hostdir

    def list(self) -> List[Tuple[str, str]]:
        with self._lock:
            return self.registry.get_volumes()

    def capabilities(self) -> Dict[str, str]:
        return {"Scope": "local"}
