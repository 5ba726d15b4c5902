#!/usr/bin/env python3
"""Manage ExilonCMS plugins and themes from the command line."""

import sys
import argparse
import logging
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from exilon.config import get
from exilon.core import ExtensionError
from exilon.db import init_db
from exilon.services import (
    ActionLogService,
    ExtensionInstaller,
    ExtensionUpdateService,
    PluginService,
    ThemeService,
)

ACTOR = "cli"


def list_extensions():
    """Print plugins and themes with their status."""
    plugins = PluginService().list_plugins()
    print("\nPlugins:")
    print("=" * 60)
    if not plugins:
        print(" (none)")
    for plugin in plugins:
        state = "enabled" if plugin["enabled"] else "disabled"
        print(f" {plugin['id']:<24} {plugin['version']:<10} {state}")

    themes = ThemeService().list_themes()
    print("\nThemes:")
    print("=" * 60)
    if not themes:
        print(" (none)")
    for theme in themes:
        print(f" {theme['id']:<24} {theme['version']:<10} {'active' if theme['active'] else ''}")
    print()


def enable_plugin(plugin_id: str):
    service = PluginService(action_log=ActionLogService(actor=ACTOR))
    if service.enable(plugin_id):
        print(f"Plugin {plugin_id} enabled.")
    else:
        print(f"Plugin {plugin_id} is already enabled.")


def disable_plugin(plugin_id: str):
    service = PluginService(action_log=ActionLogService(actor=ACTOR))
    if service.disable(plugin_id):
        print(f"Plugin {plugin_id} disabled.")
    else:
        print(f"Plugin {plugin_id} is not enabled.")


def install(archive: str, kind: str, no_enable: bool):
    installer = ExtensionInstaller(action_log=ActionLogService(actor=ACTOR))
    result = installer.install_archive(Path(archive), kind=kind, source="local", auto_enable=not no_enable)

    extension = result["extension"]
    print(f"{kind.capitalize()} {extension['name']} {extension['version']} installed.")
    if result["backup"]:
        print(f"Previous version backed up to {result['backup']}")
    if kind == "plugin":
        print("Enabled." if result["enabled"] else "Not enabled.")


def uninstall(extension_id: str, kind: str, backup: bool):
    action_log = ActionLogService(actor=ACTOR)
    if kind == "theme":
        result = ThemeService(action_log=action_log).uninstall(extension_id, backup=backup)
    else:
        result = PluginService(action_log=action_log).uninstall(extension_id, backup=backup)

    print(f"{kind.capitalize()} {result['name']} deleted.")
    if result["backup"]:
        print(f"Backup saved to {result['backup']}")


def check_updates(force: bool):
    updates = ExtensionUpdateService().check_all_updates(force)
    found = list(updates["plugins"].values()) + list(updates["themes"].values())

    if not found:
        print("Everything is up to date.")
        return

    print(f"\n{len(found)} update(s) available:")
    for update in found:
        print(f" [{update['type']}] {update['name']}: {update['current_version']} -> {update['latest_version']}")
    print()


def main():
    parser = argparse.ArgumentParser(description="Manage ExilonCMS plugins and themes")
    parser.add_argument("--verbose", "-v", action="store_true", help="Show log messages")
    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    subparsers.add_parser("list", help="List plugins and themes")

    enable_parser = subparsers.add_parser("enable", help="Enable a plugin")
    enable_parser.add_argument("id", help="Plugin ID")

    disable_parser = subparsers.add_parser("disable", help="Disable a plugin")
    disable_parser.add_argument("id", help="Plugin ID")

    install_parser = subparsers.add_parser("install", help="Install a plugin or theme from a ZIP file")
    install_parser.add_argument("archive", help="Path to the ZIP archive")
    install_parser.add_argument("--theme", action="store_true", help="The archive is a theme")
    install_parser.add_argument("--no-enable", action="store_true", help="Do not enable the plugin")

    uninstall_parser = subparsers.add_parser("uninstall", help="Delete a plugin or theme")
    uninstall_parser.add_argument("id", help="Plugin or theme ID")
    uninstall_parser.add_argument("--theme", action="store_true", help="Delete a theme")
    uninstall_parser.add_argument("--backup", action="store_true", help="Keep a backup copy")

    updates_parser = subparsers.add_parser("check-updates", help="Check the marketplace for updates")
    updates_parser.add_argument("--force", action="store_true", help="Ignore cached results")

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    if not args.command:
        parser.print_help()
        return

    init_db(get("database.path"))

    try:
        if args.command == "list":
            list_extensions()
        elif args.command == "enable":
            enable_plugin(args.id)
        elif args.command == "disable":
            disable_plugin(args.id)
        elif args.command == "install":
            install(args.archive, "theme" if args.theme else "plugin", args.no_enable)
        elif args.command == "uninstall":
            uninstall(args.id, "theme" if args.theme else "plugin", args.backup)
        elif args.command == "check-updates":
            check_updates(args.force)
    except ExtensionError as e:
        print(f"Error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
