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
from app.services.export_service import export_products_csv, export_products_workbook


def parse_args():
    parser = argparse.ArgumentParser(description="Export all products.")
    parser.add_argument("--output", default=None, help="Output file. Default: products.<format>.")
    parser.add_argument("--format", choices=("csv", "xlsx"), default="csv")
    return parser.parse_args()


def main():
    setup_logging()
    args = parse_args()
    output = Path(args.output or f"products.{args.format}")

    engine = build_engine(get_settings().DATABASE_URL)
    init_db(engine)
    db = build_session_factory(engine)()
    try:
        if args.format == "xlsx":
            output.write_bytes(export_products_workbook(db))
        else:
            output.write_text(export_products_csv(db), encoding="utf-8")
    except (OSError, InventoryError) as exc:
        raise SystemExit(f"Export failed: {exc}") from exc
    finally:
        db.close()
        engine.dispose()

    print(f"Exported products to {output}")


if __name__ == "__main__":
    main()
