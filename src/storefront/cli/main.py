#!/usr/bin/env python3
"""
Storefront CLI - Main entry point.

Usage:
    storefront serve <service>             # Run one service (uvicorn)
    storefront keys generate --out keys    # Write private_key.pem + jwks.json
    storefront services                    # List services and their ports
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import List, Optional

import uvicorn

from .. import __version__
from ..apps import available_services, build_app
from ..auth.keys import SigningKey
from ..core.errors import ConfigError
from ..core.logging_config import configure_logging
from ..core.settings import get_settings
from .config import load_config


def cmd_serve(args: argparse.Namespace) -> int:
    """Run a single service."""
    settings = get_settings()
    configure_logging(args.log_level or settings.log_level)

    try:
        config = load_config(args.config)
        app = build_app(args.service, settings)
    except ConfigError as e:
        print(f"Error: {e}")
        return 1

    # --port, then PORT from the environment, then the topology file
    if args.port is not None:
        port = args.port
    elif "port" in settings.model_fields_set:
        port = settings.port
    else:
        port = config.services[args.service].port

    uvicorn.run(app, host=args.host or settings.host, port=port, log_config=None)
    return 0


def cmd_keys_generate(args: argparse.Namespace) -> int:
    """Generate a signing key pair for the users service."""
    out = Path(args.out)
    key = SigningKey.generate(kid=args.kid)
    private_path, jwks_path = key.write(out)
    print(f"Wrote {private_path}")
    print(f"Wrote {jwks_path}")
    print(f"Key id: {key.kid}")
    return 0


def cmd_services(args: argparse.Namespace) -> int:
    """List services from the topology file."""
    try:
        config = load_config(args.config)
    except ConfigError as e:
        print(f"Error: {e}")
        return 1

    for name, svc in config.services.items():
        print(f"{name:<12} {svc.url}")
    return 0


def create_parser() -> argparse.ArgumentParser:
    """Create CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="storefront",
        description="Storefront - federated subgraphs, identity provider and coprocessor"
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # serve
    serve_parser = subparsers.add_parser("serve", help="Run a service")
    serve_parser.add_argument("service", choices=available_services(), help="Service to run")
    serve_parser.add_argument("--port", "-p", type=int, help="Port (overrides PORT and the config file)")
    serve_parser.add_argument("--host", help="Bind address")
    serve_parser.add_argument("--config", "-c", help="Topology file (default: storefront.yaml)")
    serve_parser.add_argument("--log-level", help="DEBUG, INFO, WARNING or ERROR")

    # keys
    keys_parser = subparsers.add_parser("keys", help="Signing key management")
    keys_subparsers = keys_parser.add_subparsers(dest="keys_command", help="Key commands")
    generate_parser = keys_subparsers.add_parser("generate", help="Generate a P-256 signing key")
    generate_parser.add_argument("--out", "-o", default="keys", help="Output directory")
    generate_parser.add_argument("--kid", help="Key id (default: RFC 7638 thumbprint)")

    # services
    services_parser = subparsers.add_parser("services", help="List services and their URLs")
    services_parser.add_argument("--config", "-c", help="Topology file (default: storefront.yaml)")

    return parser


def app(args: Optional[List[str]] = None) -> int:
    """Main CLI application."""
    parser = create_parser()
    parsed = parser.parse_args(args)

    if not parsed.command:
        parser.print_help()
        return 0

    if parsed.command == "keys":
        if parsed.keys_command == "generate":
            return cmd_keys_generate(parsed)
        parser.print_help()
        return 1

    commands = {
        "serve": cmd_serve,
        "services": cmd_services,
    }

    handler = commands.get(parsed.command)
    if handler:
        return handler(parsed)

    parser.print_help()
    return 1


def main() -> None:
    """Entry point for CLI."""
    sys.exit(app())


if __name__ == "__main__":
    main()
