"""
Command-line entry point: build configuration, wire storage and serve.

    mdhost --backend file --storage-dir ./data --template page.html
    mdhost --template - < page.html      # template read from stdin
"""

from __future__ import annotations
from dataclasses import replace
from typing import List, Optional
import argparse
import logging

import uvicorn

from .api import build_orchestrator, create_app
from .config import ServiceConfig
from .observability import configure_logging
from .render import PageTemplate
from .storage import StorageConfig


logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mdhost",
        description="Serve versioned, content-addressed markdown documents."
    )
    parser.add_argument("--host", help="bind address (default from MDHOST_HOST or 0.0.0.0)")
    parser.add_argument("--port", type=int, help="listening port (default 8035)")
    parser.add_argument("--backend", choices=("memory", "file"), help="storage backend")
    parser.add_argument("--storage-dir", help="directory for the file backend")
    parser.add_argument(
        "--template",
        help="page template path, or '-' to read it from stdin"
    )
    parser.add_argument("--log-level", help="logging level (default INFO)")
    return parser


def config_from_args(args: argparse.Namespace, base: Optional[ServiceConfig] = None) -> ServiceConfig:
    """Overlay command-line options on top of the environment config."""
    config = base or ServiceConfig.from_env()
    changes = {}

    if args.host:
        changes["host"] = args.host
    if args.port is not None:
        changes["port"] = args.port
    if args.log_level:
        changes["log_level"] = args.log_level

    if args.backend or args.storage_dir:
        storage_dir = args.storage_dir or config.storage.storage_dir
        backend_type = args.backend or ("file" if storage_dir else config.storage.backend_type)
        changes["storage"] = StorageConfig(backend_type=backend_type, storage_dir=storage_dir)

    if args.template == "-":
        changes["template"] = PageTemplate.from_stdin()
    elif args.template:
        changes["template"] = PageTemplate.from_file(args.template)

    return replace(config, **changes) if changes else config


def main(argv: Optional[List[str]] = None) -> None:
    args = build_parser().parse_args(argv)
    config = config_from_args(args)
    configure_logging(config.log_level)

    app = create_app(build_orchestrator(config), config)

    logger.info(
        "Starting mdhost on %s:%d (%s backend)",
        config.host, config.port, config.storage.backend_type
    )
    uvicorn.run(app, host=config.host, port=config.port, log_level=config.log_level.lower())


if __name__ == "__main__":
    main()
