#!/usr/bin/env python3
"""
Command-line backup utility: writes the full registry state as a sanitized bundle.
"""

import argparse
import sys
from pathlib import Path

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from registry_sync.core.backup import create_backup
from registry_sync.core.bundle_io import write_bundle_file
from registry_sync.core.config import ensure_export_directory
from registry_sync.core.dao import load_state, save_state
from registry_sync.core.errors import RegistryError


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Export a full backup of the local registry",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s                          # Write registry_backup_<timestamp>.json to EXPORT_DIR
  %(prog)s --output my_backup.json  # Write to an explicit path
  %(prog)s --dry-run                # Report what would be exported

Environment variables:
- DB_PATH=./data/registry.db (local state store)
- EXPORT_DIR=./exports (default output directory)
        """
    )

    parser.add_argument(
        "--output", "-o",
        help="Output file path (default: EXPORT_DIR/<generated name>)"
    )

    parser.add_argument(
        "--dry-run", "-n",
        action="store_true",
        help="Build the backup without writing files or updating the state"
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Show detailed backup information"
    )

    args = parser.parse_args(argv)

    try:
        result = create_backup(load_state())
        bundle = result.bundle

        if args.dry_run:
            print("DRY RUN - Backup built successfully")
        else:
            output = Path(args.output) if args.output else ensure_export_directory() / result.filename
            write_bundle_file(bundle, output)
            save_state(result.state, keys=["config", "logs"])
            print(f"Backup created successfully: {output}")

        print(f"Residents: {len(bundle['residents'])}")
        print(f"Territories: {len(bundle['territories'])}")
        print(f"Agents: {len(bundle['agents'])}")
        if args.verbose:
            print(f"Audit entries: {len(bundle['logs'])}")
            print(f"Schema version: {bundle['version']}")
            print(f"Timestamp: {bundle['timestamp']}")

        return 0

    except RegistryError as e:
        print(f"ERROR: Backup failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
