#!/usr/bin/env python3
"""
Entry point for cephshare CLI tool.
"""

import sys

from cephshare.cli.cli import main

if __name__ == "__main__":
    sys.exit(main())
