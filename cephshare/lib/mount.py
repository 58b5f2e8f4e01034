"""
CephFS mount/umount execution.
"""

import logging
import os
import stat
import subprocess
from typing import List, Optional

from cephshare.exceptions import (
    DirectoryConflict,
    FailureReason,
    MountExecutionFailure,
    UnmountExecutionFailure,
)
from cephshare.lib.credentials import MountSpec

logger = logging.getLogger(__name__)

FS_TYPE = "ceph"

# Matched case-insensitively, first hit wins
_KNOWN_FAILURES = [
    ("access denied by server while mounting", FailureReason.ACCESS_DENIED),
    ("failed to resolve server", FailureReason.UNRESOLVED_SERVER),
    ("device or resource busy", FailureReason.DEVICE_BUSY),
    ("not mounted", FailureReason.NOT_MOUNTED),
]


def classify_output(output: str) -> FailureReason:
    """
    Map mount/umount output to a failure reason.

    Args:
        output: Combined stdout/stderr of the tool

    Returns:
        The matching FailureReason, GENERIC when nothing is recognised
    """
    lowered = (output or "").lower()
    for needle, reason in _KNOWN_FAILURES:
        if needle in lowered:
            return reason
    return FailureReason.GENERIC


def run(cmd: List[str]) -> subprocess.CompletedProcess:
    """Run a command, capturing output. A missing binary reports exit 127."""
    try:
        return subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            check=False
        )
    except FileNotFoundError as e:
        return subprocess.CompletedProcess(cmd, 127, stdout="", stderr=str(e))


def _combined_output(result: subprocess.CompletedProcess) -> str:
    return "\n".join(part.strip() for part in (result.stdout, result.stderr) if part and part.strip())


def create_dest(dest: str) -> None:
    """
    Ensure the mount destination directory exists.

    Args:
        dest: Mount point directory

    Raises:
        DirectoryConflict: If dest exists and is not a directory, or cannot be created
    """
    try:
        st = os.lstat(dest)
    except FileNotFoundError:
        try:
            os.makedirs(dest, mode=0o755)
        except FileExistsError:
            pass
        except OSError as e:
            raise DirectoryConflict(f"mkdir failed for {dest} with error: '{e}'")
        return
    except OSError as e:
        raise DirectoryConflict(f"lstat failed for {dest} with error: '{e}'")

    if not stat.S_ISDIR(st.st_mode):
        raise DirectoryConflict(f"{dest} already exists and it's not a directory")


def remove_dest(dest: str, root: Optional[str] = None) -> None:
    """
    Remove an (empty) mount point directory left behind by an unmount.

    Args:
        dest: Mount point directory
        root: If given, empty parent directories of dest are removed as well,
            up to but not including root
    """
    try:
        os.rmdir(dest)
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning("Failed to remove mount point %s: %s", dest, e)
        return

    if root is None:
        return

    root = os.path.abspath(root)
    parent = os.path.dirname(os.path.abspath(dest))
    while parent != root and parent.startswith(root + os.sep):
        try:
            os.rmdir(parent)
        except OSError:
            # Not empty: another volume still lives below it
            break
        parent = os.path.dirname(parent)


def mount_volume(spec: MountSpec) -> None:
    """
    Mount a CephFS source.

    Args:
        spec: Resolved mount specification

    Raises:
        MountExecutionFailure: If mount exits non-zero
    """
    cmd = ["mount", "-t", FS_TYPE, spec.source, spec.destination]
    if spec.option_string:
        cmd.extend(["-o", spec.option_string])

    logger.debug("exec: %s", spec.redact(" ".join(cmd)))

    result = run(cmd)
    if result.returncode != 0:
        output = spec.redact(_combined_output(result))
        reason = classify_output(output)
        logger.error("Mount of %s on %s failed (%s): %s", spec.source, spec.destination, reason.value, output)
        raise MountExecutionFailure(
            f"Failed to mount {spec.source} on {spec.destination}: {output}",
            output=output,
            reason=reason,
        )


def unmount_volume(hostdir: str) -> None:
    """
    Unmount a CephFS mount point.

    A mount point that is already gone counts as unmounted.

    Args:
        hostdir: Mount point directory

    Raises:
        UnmountExecutionFailure: If umount exits non-zero for any other reason
    """
    result = run(["umount", hostdir])
    if result.returncode == 0:
        return

    output = _combined_output(result)
    reason = classify_output(output)
    if reason == FailureReason.NOT_MOUNTED:
        logger.info("%s was not mounted", hostdir)
        return

    logger.error("Unmount of %s failed (%s): %s", hostdir, reason.value, output)
    raise UnmountExecutionFailure(f"Failed to unmount {hostdir}: {output}", output=output, reason=reason)
