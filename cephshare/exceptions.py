"""Custom exceptions for the cephshare volume plugin."""

from enum import Enum


class FailureReason(str, Enum):
    """Known causes reported by the mount/umount tools."""

    ACCESS_DENIED = "access_denied"
    UNRESOLVED_SERVER = "unresolved_server"
    DEVICE_BUSY = "device_busy"
    NOT_MOUNTED = "not_mounted"
    GENERIC = "generic"


class CephShareException(Exception):
    """Base exception for cephshare errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


class DirectoryConflict(CephShareException):
    """Mount destination exists and is not a directory, or cannot be created."""

    pass


class ConflictingCredentials(CephShareException):
    """Both secret and secretfile were supplied."""

    pass


class SecretFileError(CephShareException):
    """Secret file could not be read."""

    pass


class ExecutionFailure(CephShareException):
    """External mount tool returned a failure."""

    def __init__(self, message: str, output: str = "", reason: FailureReason = FailureReason.GENERIC):
        super().__init__(message)
        self.output = output
        self.reason = reason


class MountExecutionFailure(ExecutionFailure):
    """mount exited non-zero."""

    pass


class UnmountExecutionFailure(ExecutionFailure):
    """umount exited non-zero."""

    pass


class VolumeInUse(CephShareException):
    """Volume still has active connections."""

    pass


class VolumeNotFound(CephShareException):
    """Volume is not known to the registry."""

    pass


class InvalidVolumeName(CephShareException, ValueError):
    """Volume name failed validation."""

    pass


class ReconciliationDegraded(CephShareException):
    """Startup reference enumeration could not be used."""

    pass
