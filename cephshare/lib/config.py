"""
Configuration loader for cephshare.

Values are fixed for the lifetime of the daemon. Environment-specific defaults
(monitor endpoint, credentials, mount root, plugin socket) live in an INI file
rather than in code.
"""

from __future__ import annotations

import configparser
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


DEFAULT_CONFIG_PATH = Path("/etc/cephshare/cephshare.conf")
DEFAULT_CEPH_PORT = "6789"


@dataclass(frozen=True)
class CephShareConfig:
    # [ceph]
    username: str = "admin"
    password: str = ""
    context: str = ""
    endpoint: str = "localhost"
    port: str = DEFAULT_CEPH_PORT
    options: str = ""
    key_description: str = "client.cephFS"
    # [plugin]
    root: str = "/var/lib/docker-volumes/cephshare"
    socket: str = "/run/docker/plugins/cephfs.sock"
    host: str = ""
    api_port: int = 9000
    refs_script: str = "/usr/sbin/cosmos/build_volume_refs.sh"
    refs_dir: str = "/tmp"
    log_level: str = "info"


def config_path() -> Path:
    env = os.environ.get("CEPHSHARE_CONFIG_PATH")
    if env:
        return Path(env)
    return DEFAULT_CONFIG_PATH


def _read_ini(path: Path) -> configparser.ConfigParser:
    # Secrets and mount contexts may legitimately contain '%'
    parser = configparser.ConfigParser(interpolation=None)
    if path.exists():
        parser.read(path, encoding="utf-8")
    return parser


def load_config(path: Optional[Path] = None) -> CephShareConfig:
    """
    Load config from `path`, `CEPHSHARE_CONFIG_PATH` or
    `/etc/cephshare/cephshare.conf`.

    Missing files are not an error; defaults are returned. `CEPHSHARE_ROOT`
    and `CEPHSHARE_PASSWORD` override the file.
    """
    parser = _read_ini(path or config_path())

    ceph_section = parser["ceph"] if parser.has_section("ceph") else {}
    plugin_section = parser["plugin"] if parser.has_section("plugin") else {}

    def _get(section: object, key: str, default: str) -> str:
        if isinstance(section, dict):
            return str(section.get(key, default)).strip()
        return str(section.get(key, fallback=default)).strip()

    def _get_int(section: object, key: str, default: int) -> int:
        raw = _get(section, key, str(default))
        try:
            return int(raw)
        except ValueError:
            return default

    def _get_port(section: object, key: str, default: str) -> str:
        raw = _get(section, key, default)
        return raw if raw.isdigit() else default

    root = os.environ.get("CEPHSHARE_ROOT") or _get(plugin_section, "root", CephShareConfig.root)
    password = os.environ.get("CEPHSHARE_PASSWORD") or _get(ceph_section, "password", "")

    return CephShareConfig(
        username=_get(ceph_section, "username", "admin"),
        password=password,
        context=_get(ceph_section, "context", ""),
        endpoint=_get(ceph_section, "endpoint", "localhost"),
        port=_get_port(ceph_section, "port", DEFAULT_CEPH_PORT),
        options=_get(ceph_section, "options", ""),
        key_description=_get(ceph_section, "key_description", "client.cephFS"),
        root=root,
        socket=_get(plugin_section, "socket", CephShareConfig.socket),
        host=_get(plugin_section, "host", ""),
        api_port=_get_int(plugin_section, "port", 9000),
        refs_script=_get(plugin_section, "refs_script", CephShareConfig.refs_script),
        refs_dir=_get(plugin_section, "refs_dir", "/tmp"),
        log_level=_get(plugin_section, "log_level", "info").lower(),
    )
