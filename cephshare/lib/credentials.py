"""
CephFS credential and mount-source resolution.

Turns the per-volume options supplied at create time, together with the daemon
defaults, into a fully resolved mount invocation. The only I/O performed here
is reading an optional secret file.

A volume can be mounted in a couple of ways:

- the daemon is started with a default user/secret and the volume name encodes
  the monitor host and path (``monitor/share/path``);
- the volume is created with explicit options::

    docker volume create -d cephfs --opt addr=<addr>[,<addr>] --opt name=<user> \\
        --opt secret=<key> --opt device=:/<path> [--opt secretfile=<file>] [--opt port=<port>] vol

Either `secret` or `secretfile` may be given, not both. When `port` is not
given, 6789 is assumed.
"""

from __future__ import annotations

from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Tuple

from cephshare.exceptions import ConflictingCredentials, SecretFileError
from cephshare.lib.config import DEFAULT_CEPH_PORT, CephShareConfig

SHARE_OPT = "share"
CEPH_OPTS = "cephopts"
SHARE_SPLIT_IDENTIFIER = "#"


@dataclass(frozen=True)
class CephDefaults:
    """Daemon-wide defaults used when a volume does not override them."""

    username: str = ""
    password: str = ""
    context: str = ""
    endpoint: str = "localhost"
    port: str = DEFAULT_CEPH_PORT
    options: str = ""

    @classmethod
    def from_config(cls, cfg: CephShareConfig) -> "CephDefaults":
        return cls(
            username=cfg.username,
            password=cfg.password,
            context=cfg.context,
            endpoint=cfg.endpoint,
            port=cfg.port,
            options=cfg.options,
        )


@dataclass
class MountSpec:
    """A resolved `mount -t ceph` invocation."""

    source: str
    destination: str
    options: List[str] = field(default_factory=list)
    secret: str = ""

    @property
    def option_string(self) -> str:
        return ",".join(opt for opt in self.options if opt)

    def redact(self, text: str) -> str:
        """Replace the secret with a placeholder before logging or reporting."""
        if not self.secret:
            return text
        return text.replace(self.secret, "****")


def resolve_name(name: str) -> Tuple[str, Optional[Dict[str, str]]]:
    """
    Split the inline `<share>#<name>` syntax used for on-the-fly volumes.

    Returns:
        Tuple of (volume name, options or None)
    """
    if SHARE_SPLIT_IDENTIFIER in name:
        share, volume = name.split(SHARE_SPLIT_IDENTIFIER, 1)
        return volume, {SHARE_OPT: add_share_colon(share)}
    return name, None


def add_share_colon(share: str) -> str:
    """Insert the `:` between monitor host and path when missing."""
    if ":" in share:
        return share
    host, sep, path = share.partition("/")
    return f"{host}:{sep}{path}"


def read_secret_file(secret_file: str) -> str:
    try:
        with open(secret_file, "r", encoding="utf-8") as file:
            return file.read().strip()
    except OSError as e:
        raise SecretFileError(f"Failed to read secret file {secret_file}: {e.strerror or e}")


def resolve_username(options: Mapping[str, str], defaults: CephDefaults) -> str:
    return options.get("name") or defaults.username


def resolve_secret(options: Mapping[str, str], defaults: CephDefaults) -> str:
    """
    Resolve the secret for a mount.

    Raises:
        ConflictingCredentials: If both secret and secretfile are set
        SecretFileError: If the secret file cannot be read
    """
    secret = options.get("secret", "")
    secret_file = options.get("secretfile", "")
    if secret and secret_file:
        raise ConflictingCredentials("Cannot pass secret and secretfile options together")
    if secret:
        return secret
    if secret_file:
        return read_secret_file(secret_file)
    return defaults.password


def resolve_port(options: Mapping[str, str]) -> str:
    return options.get("port") or DEFAULT_CEPH_PORT


def resolve_source(name: str, options: Mapping[str, str], defaults: CephDefaults) -> str:
    """
    Build the mount source string.

    Priority:
    1) `addr`: comma separated monitors, each with the port, then `device`
       (e.g. "10.0.0.1:6789,10.0.0.2:6789/data")
    2) `share`: used verbatim
    3) the volume name: "host/path" -> "host:<port>:/path", a bare name is
       placed below the default endpoint
    """
    addr = options.get("addr", "")
    if addr:
        port = resolve_port(options)
        monitors = [a.strip() for a in addr.split(",") if a.strip()]
        return ",".join(f"{monitor}:{port}" for monitor in monitors) + options.get("device", "")

    share = options.get(SHARE_OPT, "")
    if share:
        return share

    host, sep, path = name.partition("/")
    if not sep:
        return f"{defaults.endpoint}:{defaults.port}:/{name}"
    return f"{host}:{defaults.port}:/{path}"


def _split_opts(raw: str) -> "OrderedDict[str, str]":
    parsed: "OrderedDict[str, str]" = OrderedDict()
    for token in raw.split(","):
        token = token.strip()
        if token:
            parsed[token.split("=", 1)[0]] = token
    return parsed


def merge_mount_options(default_opts: str, call_opts: str) -> str:
    """
    Merge two comma-separated mount option strings.

    Options are keyed by the part before `=`; per-call values win.
    """
    merged = _split_opts(default_opts)
    for key, token in _split_opts(call_opts).items():
        merged[key] = token
    return ",".join(merged.values())


def build_mount_spec(name: str, destination: str, options: Mapping[str, str], defaults: CephDefaults) -> MountSpec:
    """
    Resolve everything needed to mount volume `name` on `destination`.

    Raises:
        ConflictingCredentials: Before any process is run
        SecretFileError: If the secret file cannot be read
    """
    secret = resolve_secret(options, defaults)
    username = resolve_username(options, defaults)

    mount_opts = [
        defaults.context,
        f"name={username}" if username else "",
        f"secret={secret}" if secret else "",
        merge_mount_options(defaults.options, options.get(CEPH_OPTS, "")),
    ]

    return MountSpec(
        source=resolve_source(name, options, defaults),
        destination=destination,
        options=[opt for opt in mount_opts if opt],
        secret=secret,
    )
