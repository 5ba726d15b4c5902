#!/usr/bin/env python3
"""Manage API keys for the ExilonCMS extension API."""

import sys
import argparse
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from exilon.db import get_session, init_db, APIKey
from exilon.config import get
from exilon.api.auth import PERMISSIONS, generate_api_key, hash_api_key


def _init():
    init_db(get("database.path"))


def create_key(name: str, description: str = None, permissions: str = "*"):
    """Create a new API key and print it once."""
    requested = [p.strip() for p in permissions.split(",") if p.strip()]
    unknown = [p for p in requested if p != "*" and p not in PERMISSIONS]
    if unknown:
        print(f"Unknown permission(s): {', '.join(unknown)}")
        print(f"Available: *, {', '.join(PERMISSIONS)}")
        sys.exit(1)

    _init()
    api_key = generate_api_key()

    with get_session() as session:
        key_obj = APIKey(
            key=hash_api_key(api_key),
            name=name,
            description=description,
            permissions=",".join(requested) or "*",
            is_active=True
        )
        session.add(key_obj)
        session.flush()

        print("\nAPI key created")
        print("=" * 60)
        print(f"Client: {name}")
        print(f"Description: {description or 'N/A'}")
        print(f"Permissions: {key_obj.permissions}")
        print("=" * 60)
        print(f"API Key: {api_key}")
        print("=" * 60)
        print("Save this key now, it will not be shown again.\n")


def list_keys():
    """List all API keys."""
    _init()

    with get_session() as session:
        keys = session.query(APIKey).order_by(APIKey.created_at.desc()).all()

        if not keys:
            print("No API keys found.")
            return

        print("\nAPI Keys:")
        print("=" * 80)
        for key in keys:
            last_used = key.last_used.strftime("%Y-%m-%d %H:%M") if key.last_used else "Never"
            print(f"\n ID: {key.id}")
            print(f" Name: {key.name}")
            print(f" Permissions: {key.permissions}")
            print(f" Status: {'active' if key.is_active else 'inactive'}")
            print(f" Last Used: {last_used} ({key.usage_count} requests)")
        print("=" * 80)


def set_active(key_id: int, active: bool):
    """Activate or deactivate an API key."""
    _init()

    with get_session() as session:
        key = session.query(APIKey).filter_by(id=key_id).first()
        if not key:
            print(f"API key #{key_id} not found.")
            sys.exit(1)

        key.is_active = active
        print(f"API key '{key.name}' (ID: {key_id}) {'activated' if active else 'deactivated'}.")


def delete_key(key_id: int):
    """Delete an API key."""
    _init()

    with get_session() as session:
        key = session.query(APIKey).filter_by(id=key_id).first()
        if not key:
            print(f"API key #{key_id} not found.")
            sys.exit(1)

        session.delete(key)
        print(f"API key '{key.name}' (ID: {key_id}) deleted.")


def main():
    parser = argparse.ArgumentParser(description="Manage API keys for the ExilonCMS extension API")
    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    create_parser = subparsers.add_parser("create", help="Create a new API key")
    create_parser.add_argument("name", help="Client name/identifier")
    create_parser.add_argument("--description", "-d", help="What this key is used for")
    create_parser.add_argument("--permissions", "-p", default="*",
                               help=f"Comma-separated permissions (default: *). Available: {', '.join(PERMISSIONS)}")

    subparsers.add_parser("list", help="List all API keys")

    for command, help_text in [("activate", "Activate an API key"),
                               ("deactivate", "Deactivate an API key"),
                               ("delete", "Delete an API key")]:
        sub = subparsers.add_parser(command, help=help_text)
        sub.add_argument("id", type=int, help="API key ID")

    args = parser.parse_args()

    if args.command == "create":
        create_key(args.name, args.description, args.permissions)
    elif args.command == "list":
        list_keys()
    elif args.command in ("activate", "deactivate"):
        set_active(args.id, args.command == "activate")
    elif args.command == "delete":
        delete_key(args.id)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
