"""
Command-line interface for the dub package manager
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from .config import load_config
from .errors import NotFoundError, PackageManagerError
from .log import configure_logging, level_for_verbosity, parse_level
from .package_manager import PackageManager
from .repository import LocalPackageType


def _repo_type(args: argparse.Namespace) -> LocalPackageType:
    return LocalPackageType.SYSTEM if args.system else LocalPackageType.USER


def _add_repo_flag(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--system", action="store_true",
                        help="Use the system repository instead of the user one")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dubpkg",
        description="Manage dub packages on the local machine"
    )
    parser.add_argument("--config", type=Path, help="Settings file to use")
    parser.add_argument("-v", "--verbose", action="count", default=0,
                        help="More output (repeat for debug output)")
    parser.add_argument("-q", "--quiet", action="store_true", help="Only show warnings and errors")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # list command
    list_parser = subparsers.add_parser("list", help="List known packages")
    list_parser.add_argument("name", nargs="?", help="Only list packages with this name")

    # install command
    install_parser = subparsers.add_parser("install", help="Install a package from a zip archive")
    install_parser.add_argument("archive", type=Path, help="Package archive")
    install_parser.add_argument("--name", required=True, help="Package name")
    install_parser.add_argument("--version", required=True, help="Package version")
    install_parser.add_argument("--dest", type=Path,
                                help="Install directory (default: <packages>/<name>-<version>)")
    _add_repo_flag(install_parser)

    # uninstall command
    uninstall_parser = subparsers.add_parser("uninstall", help="Uninstall a package")
    uninstall_parser.add_argument("name", help="Package name")
    uninstall_parser.add_argument("version", help="Package version")

    # local package commands
    add_local_parser = subparsers.add_parser("add-local", help="Register a local package directory")
    add_local_parser.add_argument("path", type=Path, help="Package directory")
    add_local_parser.add_argument("version", help="Version to register it as")
    _add_repo_flag(add_local_parser)

    remove_local_parser = subparsers.add_parser("remove-local", help="Unregister a local package")
    remove_local_parser.add_argument("path", type=Path, help="Package directory")
    _add_repo_flag(remove_local_parser)

    # search path commands
    add_path_parser = subparsers.add_parser("add-path", help="Add a directory to scan for packages")
    add_path_parser.add_argument("path", type=Path, help="Directory containing packages")
    _add_repo_flag(add_path_parser)

    remove_path_parser = subparsers.add_parser("remove-path", help="Stop scanning a directory")
    remove_path_parser.add_argument("path", type=Path, help="Directory containing packages")
    _add_repo_flag(remove_path_parser)

    # query commands
    best_parser = subparsers.add_parser("best", help="Show the best package for a version spec")
    best_parser.add_argument("name", help="Package name")
    best_parser.add_argument("spec", help="Version spec, e.g. \">=1.0.0 <2.0.0\"")

    hash_parser = subparsers.add_parser("hash", help="Print the content hash of a package")
    hash_parser.add_argument("name", help="Package name")
    hash_parser.add_argument("version", help="Package version")

    return parser


def main(args: Optional[List[str]] = None) -> int:
    """Main CLI entry point"""
    parser = build_parser()
    args = parser.parse_args(args)

    if args.command is None:
        parser.print_help()
        return 1

    try:
        config = load_config(args.config)
        if args.quiet or args.verbose:
            configure_logging(level_for_verbosity(-1 if args.quiet else args.verbose))
        else:
            configure_logging(parse_level(config.log_level))

        pm = PackageManager.from_config(config)

        if args.command == "list":
            for pkg in pm.iter_packages(args.name):
                print(f"{pkg.name} {pkg.version_string}: {pkg.path}")

        elif args.command == "install":
            dest = args.dest
            if dest is None:
                clean_version = args.version.lstrip("~")
                dest = pm.repositories[_repo_type(args)].package_path / f"{args.name}-{clean_version}"
            pkg = pm.install(args.archive, {"name": args.name, "version": args.version}, dest)
            print(f"Installed {pkg.name} {pkg.version_string} to {pkg.path}")

        elif args.command == "uninstall":
            pkg = pm.get_package(args.name, args.version)
            if pkg is None:
                raise NotFoundError(f"Package {args.name} {args.version} is not installed",
                                    name=args.name, version=args.version)
            pm.uninstall(pkg)
            print(f"Uninstalled {args.name} {args.version}")

        elif args.command == "add-local":
            pkg = pm.add_local_package(args.path, args.version, _repo_type(args))
            print(f"Registered package {pkg.name} {pkg.version_string} at {pkg.path}")

        elif args.command == "remove-local":
            pm.remove_local_package(args.path, _repo_type(args))
            print(f"Unregistered package at {args.path}")

        elif args.command == "add-path":
            pm.add_search_path(args.path, _repo_type(args))
            print(f"Added search path {args.path}")

        elif args.command == "remove-path":
            pm.remove_search_path(args.path, _repo_type(args))
            print(f"Removed search path {args.path}")

        elif args.command == "best":
            pkg = pm.get_best_package(args.name, args.spec)
            if pkg is None:
                print(f"No version of {args.name} satisfies {args.spec}", file=sys.stderr)
                return 1
            print(f"{pkg.name} {pkg.version_string}: {pkg.path}")

        elif args.command == "hash":
            pkg = pm.get_package(args.name, args.version)
            if pkg is None:
                raise NotFoundError(f"Package {args.name} {args.version} not found",
                                    name=args.name, version=args.version)
            print(pm.hash_package(pkg).hex())

        return 0

    except KeyboardInterrupt:
        print("\nOperation cancelled")
        return 130
    except (PackageManagerError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
