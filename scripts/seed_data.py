import argparse
import sys
from pathlib import Path

# Ensure repo root is on sys.path when running this script directly.
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from sqlalchemy import delete, select

from app.config import get_settings
from app.core.logging import setup_logging
from app.database import build_engine, build_session_factory, init_db
from app.models.inventory_history import InventoryHistory
from app.models.product import Product
from app.services.product_service import create_product

SAMPLE_PRODUCTS = [
    {"name": "Ballpoint Pen", "unit": "box", "category": "Stationery", "brand": "Inkwell", "stock": 120, "status": "In Stock"},
    {"name": "A4 Paper", "unit": "ream", "category": "Stationery", "brand": "PaperCo", "stock": 40, "status": "In Stock"},
    {"name": "Stapler", "unit": "piece", "category": "Office", "brand": "Clampit", "stock": 0, "status": "Out of Stock"},
    {"name": "USB-C Cable", "unit": "piece", "category": "Electronics", "brand": "Linkr", "stock": 15, "status": "In Stock"},
]


def parse_args():
    parser = argparse.ArgumentParser(description="Seed sample products.")
    parser.add_argument(
        "--reset",
        action="store_true",
        help="Clear existing data before seeding.",
    )
    return parser.parse_args()


def main():
    setup_logging()
    args = parse_args()

    engine = build_engine(get_settings().DATABASE_URL)
    init_db(engine)
    db = build_session_factory(engine)()
    try:
        if args.reset:
            db.execute(delete(InventoryHistory))
            db.execute(delete(Product))
            db.commit()

        has_product = db.execute(select(Product.id).limit(1)).first()
        if has_product:
            print("Seed skipped: products already exist.")
            return

        for fields in SAMPLE_PRODUCTS:
            create_product(db, fields)
        print(f"Seeded {len(SAMPLE_PRODUCTS)} products.")
    finally:
        db.close()
        engine.dispose()


if __name__ == "__main__":
    main()
