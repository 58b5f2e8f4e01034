"""
cephshare - Docker volume plugin for CephFS.

This package mounts CephFS volumes on demand for containers, sharing one mount
per volume name across consumers and unmounting it when the last one leaves.
"""

__version__ = "0.1.0"
__all__ = ["api", "cli", "driver", "registry"]
