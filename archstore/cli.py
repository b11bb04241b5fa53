#!/usr/bin/env python3
import argparse
import getpass
import json
import sys

from archstore.errors import ArchStoreError
from archstore.models import SOURCES, SOURCE_FLATPAK, REMOVE_PLAIN, REMOVE_RECURSIVE, ProgressEvent
from archstore.operations import PackageOperations
from archstore.progress import CallbackSink
from archstore.queries import PackageQueries
from archstore.system import SystemManager


def parse_args(argv=None):
    """Parse command line arguments"""
    parser = argparse.ArgumentParser(
        description='Install, remove and update Arch, AUR and Flatpak packages',
        prog='archstore'
    )

    subparsers = parser.add_subparsers(dest='command', help='Commands')

    search_parser = subparsers.add_parser('search', help='Search for packages')
    search_parser.add_argument('query', help='Search query')
    search_parser.add_argument('--source', choices=SOURCES + ('all',), default='all',
                               help='Source to search (default: all)')

    subparsers.add_parser('list', help='List installed packages')

    info_parser = subparsers.add_parser('info', help='Show package details')
    info_parser.add_argument('source', choices=SOURCES, help='Package source')
    info_parser.add_argument('package', help='Package name or Flatpak application ID')

    install_parser = subparsers.add_parser('install', help='Install a package')
    install_parser.add_argument('source', choices=SOURCES, help='Package source')
    install_parser.add_argument('package', help='Package name or Flatpak application ID')

    remove_parser = subparsers.add_parser('remove', help='Remove a package')
    remove_parser.add_argument('source', choices=SOURCES, help='Package source')
    remove_parser.add_argument('package', help='Package name or Flatpak application ID')
    remove_parser.add_argument('--recursive', action='store_true',
                               help='Also remove dependencies nothing else needs')

    update_parser = subparsers.add_parser('update', help='Update installed packages')
    update_parser.add_argument('--only', choices=SOURCES, help='Update a single source')

    subparsers.add_parser('check-updates', help='List pending updates')
    subparsers.add_parser('enable-multilib', help='Enable the multilib repository')
    subparsers.add_parser('capabilities', help='Show which package sources are usable')

    return parser.parse_args(argv)


def print_progress(channel: str, event: ProgressEvent):
    print(f"[{event.percentage:3d}%] {event.message}", flush=True)


def ask_password() -> str:
    return getpass.getpass("[archstore] sudo password: ")


def print_packages(packages, limit=None):
    if not packages:
        print("  No packages found")
        return
    for package in packages[:limit]:
        marker = " [installed]" if package.installed else ""
        print(f"  {package.source}/{package.name} {package.version}{marker}")
        if package.description:
            print(f"    {package.description[:80]}")


def cmd_search(args, queries):
    """Execute search command"""
    searches = {
        'official': queries.search_official_packages,
        'aur': queries.search_aur_packages,
        'flatpak': queries.search_flatpak_packages,
    }
    sources = SOURCES if args.source == 'all' else (args.source,)

    for source in sources:
        print(f"[{source.upper()}]")
        try:
            print_packages(searches[source](args.query))
        except ArchStoreError as e:
            print(f"  {e}")
        print()
    return 0


def cmd_list(args, queries):
    print("Installed packages:\n")
    print_packages(queries.get_installed_packages())
    return 0


def cmd_info(args, queries):
    try:
        package = queries.get_package_info(args.package, args.source)
    except ArchStoreError as e:
        print(f"Error: {e}")
        return 1
    print(json.dumps(package.to_dict(), indent=2))
    return 0


def cmd_install(args, operations):
    password = None if args.source == SOURCE_FLATPAK else ask_password()
    success, message = operations.install_package(args.package, args.source, password)
    print(message)
    return 0 if success else 1


def cmd_remove(args, operations):
    password = None if args.source == SOURCE_FLATPAK else ask_password()
    mode = REMOVE_RECURSIVE if args.recursive else REMOVE_PLAIN
    success, message = operations.remove_package(args.package, args.source, mode, password)
    print(message)
    return 0 if success else 1


def cmd_update(args, operations):
    if args.only == SOURCE_FLATPAK:
        success, message = operations.update_flatpak()
    elif args.only == 'official':
        success, message = operations.update_official(ask_password())
    elif args.only == 'aur':
        success, message = operations.update_aur(ask_password())
    else:
        success, message = operations.update_system(ask_password())
    print(message)
    return 0 if success else 1


def cmd_check_updates(args, queries):
    updates = queries.check_updates()
    if not updates:
        print("System is up to date")
        return 0
    for package in updates:
        print(f"  {package.source}/{package.name}: {package.description}")
    return 0


def cmd_enable_multilib(args, system):
    if system.is_multilib_enabled():
        success, message = system.enable_multilib()
    else:
        success, message = system.enable_multilib(ask_password())
    print(message)
    return 0 if success else 1


def cmd_capabilities(args, system):
    print(json.dumps(system.check_system_capabilities().to_dict(), indent=2))
    return 0


def main(argv=None):
    """Main entry point"""
    args = parse_args(argv)

    if not args.command:
        print("Error: No command specified. Use --help for usage.")
        return 1

    if args.command in ('search', 'list', 'info', 'check-updates'):
        queries = PackageQueries()
        handlers = {
            'search': cmd_search,
            'list': cmd_list,
            'info': cmd_info,
            'check-updates': cmd_check_updates,
        }
        return handlers[args.command](args, queries)

    if args.command in ('enable-multilib', 'capabilities'):
        system = SystemManager()
        if args.command == 'capabilities':
            return cmd_capabilities(args, system)
        return cmd_enable_multilib(args, system)

    operations = PackageOperations(sink=CallbackSink(print_progress))
    handlers = {
        'install': cmd_install,
        'remove': cmd_remove,
        'update': cmd_update,
    }
    return handlers[args.command](args, operations)


if __name__ == '__main__':
    sys.exit(main())
