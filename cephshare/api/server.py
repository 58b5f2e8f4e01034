"""
Uvicorn server entrypoint for the cephshare volume plugin.
"""

from __future__ import annotations

import argparse
import logging
import os
from pathlib import Path

import uvicorn

from cephshare.lib.config import load_config


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="cephshare-plugin", description="Docker volume plugin for CephFS")
    parser.add_argument("--config", default=None, help="Config file (default: $CEPHSHARE_CONFIG_PATH or /etc/cephshare/cephshare.conf)")
    parser.add_argument("--socket", default=None, help="Unix socket to listen on (default: from config)")
    parser.add_argument("--host", default=None, help="Listen on TCP host instead of a unix socket")
    parser.add_argument("--port", type=int, default=None, help="TCP port (default: from config or 9000)")
    parser.add_argument("--log-level", default=None, help="Log level (default: from config or info)")
    parser.add_argument("--no-reconcile", action="store_true", help="Do not rebuild volume references at startup")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    cfg = load_config(Path(args.config) if args.config else None)
    log_level = (args.log_level or cfg.log_level).lower()

    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger = logging.getLogger("cephshare")

    from cephshare.api import main as api_main
    from cephshare.driver import CephDriver

    # References must be rebuilt before the first request is served
    driver = CephDriver(cfg, reconcile=not args.no_reconcile)
    api_main.app.dependency_overrides[api_main.get_driver] = lambda: driver

    host = args.host or cfg.host
    if host:
        port = args.port or cfg.api_port
        logger.info("Serving cephshare plugin on %s:%d", host, port)
        uvicorn.run(api_main.app, host=host, port=port, log_level=log_level)
        return 0

    socket_path = args.socket or cfg.socket
    os.makedirs(os.path.dirname(socket_path) or ".", exist_ok=True)
    if os.path.exists(socket_path):
        os.unlink(socket_path)
    logger.info("Serving cephshare plugin on unix socket %s", socket_path)
    uvicorn.run(api_main.app, uds=socket_path, log_level=log_level)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
