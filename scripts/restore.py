#!/usr/bin/env python3
"""
Command-line restore utility: replaces the whole local registry with a backup bundle.
"""

import argparse
import sys
from pathlib import Path

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from registry_sync.core.backup import restore_backup
from registry_sync.core.bundle_io import read_bundle_file
from registry_sync.core.config import get_db_path
from registry_sync.core.dao import load_state, save_state
from registry_sync.core.errors import RegistryError


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Restore the local registry from a backup bundle",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s registry_backup.json            # Restore (asks for confirmation)
  %(prog)s registry_backup.json --dry-run  # Validate without restoring
  %(prog)s registry_backup.json --force    # Restore without confirmation

The restore process:
1. Reads and parses the bundle file
2. Sanitizes it (missing fields defaulted, identifiers generated)
3. Replaces ALL local residents, territories, agents, logs and institution
4. Records the restore in the audit log
        """
    )

    parser.add_argument(
        "bundle_path",
        help="Path to the backup bundle file"
    )

    parser.add_argument(
        "--dry-run", "-n",
        action="store_true",
        help="Validate the bundle without performing restoration"
    )

    parser.add_argument(
        "--force", "-f",
        action="store_true",
        help="Skip the confirmation prompt"
    )

    args = parser.parse_args(argv)

    try:
        raw = read_bundle_file(args.bundle_path)
        new_state = restore_backup(load_state(), raw)

        print("Backup Information:")
        print(f"  Institution: {new_state['institution'].get('name', 'unknown')}")
        print(f"  Residents: {len(new_state['residents'])}")
        print(f"  Territories: {len(new_state['territories'])}")
        print(f"  Agents: {len(new_state['agents'])}")
        print()

        if args.dry_run:
            print("DRY RUN - Backup validation completed successfully")
            return 0

        if not args.force:
            print("WARNING: Restoring a backup replaces ALL current data!")
            print(f"Target database: {get_db_path()}")
            response = input("Are you sure you want to proceed? (type 'yes' to continue): ")
            if response.lower() != 'yes':
                print("Operation cancelled by user.")
                return 0

        save_state(new_state)
        print("Restore completed successfully")
        return 0

    except RegistryError as e:
        print(f"ERROR: Restore failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
