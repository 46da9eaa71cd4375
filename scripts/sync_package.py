#!/usr/bin/env python3
"""
Command-line station sync utility.

  export  - on a collection station, write the package for the central server
  import  - on the central server, merge a station package into the registry
"""

import argparse
import sys
from pathlib import Path

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from registry_sync.core.bundle_io import read_bundle_bytes, write_bundle_file
from registry_sync.core.config import ensure_export_directory
from registry_sync.core.dao import load_state, save_state
from registry_sync.core.errors import RegistryError
from registry_sync.core.sync import export_station_package, import_station_package


def _export(args):
    result = export_station_package(load_state())

    if args.dry_run:
        print("DRY RUN - Package built successfully")
    else:
        output = Path(args.output) if args.output else ensure_export_directory() / result.filename
        write_bundle_file(result.bundle, output)
        save_state(result.state, keys=["logs"])
        print(f"Collection package written: {output}")
        print("Deliver this file to the central server administrator.")

    print(f"Residents: {len(result.bundle['residents'])}")
    print(f"Territories: {len(result.bundle['territories'])}")
    return 0


def _import(args):
    path = Path(args.package_path)
    result = import_station_package(load_state(), read_bundle_bytes(path), source_name=path.name)

    if args.dry_run:
        print("DRY RUN - Package validated, nothing saved")
    else:
        save_state(result.state, keys=["residents", "territories", "logs"])

    print(result.message())
    if result.merge.skipped_territories:
        print(f"Territories already known: {result.merge.skipped_territories}")
    if result.merge.placeholder_matches:
        print(f"WARNING: {result.merge.placeholder_matches} updates matched on the placeholder national ID")
    return 0


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Exchange collection packages between stations and the central server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s export                            # Station: write package to EXPORT_DIR
  %(prog)s export --output pkg.json          # Station: write package to a path
  %(prog)s import station_package_X.json     # Server: merge a package
  %(prog)s import pkg.json --dry-run         # Server: report counts only
        """
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    export_parser = subparsers.add_parser("export", help="Write a collection package")
    export_parser.add_argument("--output", "-o", help="Output file path")
    export_parser.add_argument("--dry-run", "-n", action="store_true", help="Build without writing")
    export_parser.set_defaults(handler=_export)

    import_parser = subparsers.add_parser("import", help="Merge a station package")
    import_parser.add_argument("package_path", help="Path to the station package file")
    import_parser.add_argument("--dry-run", "-n", action="store_true", help="Merge without saving")
    import_parser.set_defaults(handler=_import)

    args = parser.parse_args(argv)

    try:
        return args.handler(args)
    except RegistryError as e:
        print(f"ERROR: Sync failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
