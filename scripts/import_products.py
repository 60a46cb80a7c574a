import argparse
import sys
from pathlib import Path

# Ensure repo root is on sys.path when running this script directly.
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from app.config import get_settings
from app.core.errors import InventoryError
from app.core.logging import setup_logging
from app.database import build_engine, build_session_factory, init_db
from app.services.import_service import import_file


def parse_args():
    parser = argparse.ArgumentParser(
        description="Import products from a CSV file or .xlsx workbook."
    )
    parser.add_argument("--path", required=True, help="Path to the .csv or .xlsx file.")
    parser.add_argument("--dry-run", action="store_true", help="Validate without saving.")
    return parser.parse_args()


def main():
    setup_logging()
    args = parse_args()

    engine = build_engine(get_settings().DATABASE_URL)
    init_db(engine)
    db = build_session_factory(engine)()
    try:
        summary = import_file(db, args.path, dry_run=args.dry_run)
    except (OSError, InventoryError) as exc:
        raise SystemExit(f"Import failed: {exc}") from exc
    finally:
        db.close()
        engine.dispose()

    print(f"{summary.added} added, {summary.skipped} skipped")
    if summary.duplicates:
        print("Duplicates:")
        for duplicate in summary.duplicates:
            print(f"  {duplicate.name} (existing id {duplicate.existing_id})")

    if args.dry_run:
        print("Dry run complete, no changes committed.")
    else:
        print("Import complete.")


if __name__ == "__main__":
    main()
