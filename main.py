#!/usr/bin/env python3
"""
gBridge — operator CLI for the account-linking core.

Runs the same code paths the voice-assistant integration uses, against the
database configured in DB_URL. Handy for checking why a user cannot link.

Usage:
  python main.py init-db
  python main.py link alice@example.com 123456
  python main.py resolve 3f9c0e...
  python main.py devices 3f9c0e...
  python main.py devices 3f9c0e... --json

Environment variables:
  DB_URL                       SQLAlchemy URL of the bridge database.
  ACCESS_PASSWORD_TTL_SECONDS  Access password lifetime (default 3600).
  LOG_LEVEL                    Logging level (default INFO).
"""

import argparse
import json
import logging
import sys
from dataclasses import asdict
from typing import Optional

from auth.accesskeys import link_account, resolve_platform_key
from auth.store import AccessKeyStore
from core.config import get_settings
from core.database import open_engine
from core.errors import BridgeError
from devices.graph import build_capability_graph
from devices.models import DeviceView
from devices.store import DeviceStore


def _print_graph(devices: list[DeviceView]) -> None:
    if not devices:
        print("  No devices.")
        return
    for device in devices:
        print(f"  [{device.device_id}] {device.name} ({device.type_name})")
        if not device.traits:
            print("      (no traits)")
        for trait in device.traits:
            config = f" {json.dumps(trait.config)}" if trait.config else ""
            print(f"      - {trait.capability_name}{config}")


def run(argv: Optional[list[str]] = None) -> int:
    """Parse argv, run one command, and return the process exit code."""
    parser = argparse.ArgumentParser(
        prog="gbridge",
        description="Account-linking and capability lookup for the gBridge voice-assistant bridge.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py init-db
  python main.py link alice@example.com 123456
  python main.py devices <platform-key> --json
  DB_URL=mysql+pymysql://gbridge:pw@localhost/gbridge python main.py resolve <platform-key>
        """,
    )
    output = argparse.ArgumentParser(add_help=False)
    output.add_argument(
        "--json",
        action="store_true",
        help="Output structured JSON",
    )
    sub = parser.add_subparsers(dest="command", metavar="COMMAND")
    sub.add_parser("init-db", help="Create any missing tables")
    link_p = sub.add_parser(
        "link", parents=[output], help="Validate and consume an access password; print the platform key"
    )
    link_p.add_argument("email")
    link_p.add_argument("password", metavar="ACCESS-PASSWORD")
    resolve_p = sub.add_parser("resolve", parents=[output], help="Show the user behind a platform key")
    resolve_p.add_argument("key", metavar="PLATFORM-KEY")
    devices_p = sub.add_parser("devices", parents=[output], help="Show the capability graph behind a platform key")
    devices_p.add_argument("key", metavar="PLATFORM-KEY")
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    settings = get_settings()

    engine = None
    try:
        engine = open_engine(settings.db_url)
        if args.command == "init-db":
            print("  Database ready.")
            return 0

        keys = AccessKeyStore(engine)

        if args.command == "link":
            google_key = link_account(keys, args.email, args.password)
            if args.json:
                print(json.dumps({"google_key": google_key}, indent=2))
            else:
                print(f"  Linked. Platform key: {google_key}")

        elif args.command == "resolve":
            identity = resolve_platform_key(keys, args.key)
            if args.json:
                print(json.dumps(asdict(identity), indent=2))
            else:
                print(f"  User {identity.user_id} <{identity.email}> (access key {identity.accesskey_id})")

        elif args.command == "devices":
            identity = resolve_platform_key(keys, args.key)
            devices = build_capability_graph(DeviceStore(engine), identity.user_id)
            if args.json:
                print(json.dumps([asdict(d) for d in devices], indent=2))
            else:
                print(f"  Devices of {identity.email}:")
                _print_graph(devices)

    except BridgeError as exc:
        print(f"  [!] {exc.message}")
        return 1
    finally:
        if engine is not None:
            engine.dispose()

    return 0


def main() -> None:
    logging.basicConfig(
        level=get_settings().log_level.upper(),
        format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    sys.exit(run())


if __name__ == "__main__":
    main()
