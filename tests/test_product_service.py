import unittest
from unittest.mock import patch

from sqlalchemy.exc import SQLAlchemyError

from app.core.errors import DuplicateNameError, NotFoundError, StoreError, ValidationError
from app.database import build_engine, build_session_factory, init_db
from app.services import product_service
from app.services.history_service import load_stock_history


class ProductServiceTest(unittest.TestCase):
    def setUp(self):
        self.engine = build_engine("sqlite:///:memory:")
        init_db(self.engine)
        self.db = build_session_factory(self.engine)()

    def tearDown(self):
        self.db.close()
        self.engine.dispose()

    def _create(self, **fields):
        return product_service.create_product(self.db, fields)

    def test_create_then_get_returns_same_fields(self):
        created = self._create(
            name="Notebook",
            unit="piece",
            category="Stationery",
            brand="Acme",
            stock=12,
            status="In Stock",
            image="https://cdn.example.com/notebook.png",
        )
        self.db.expire_all()

        fetched = product_service.get_product(self.db, created.id)
        self.assertIsNotNone(fetched)
        self.assertEqual(fetched.name, "Notebook")
        self.assertEqual(fetched.unit, "piece")
        self.assertEqual(fetched.category, "Stationery")
        self.assertEqual(fetched.brand, "Acme")
        self.assertEqual(fetched.stock, 12)
        self.assertEqual(fetched.status, "In Stock")
        self.assertEqual(fetched.image, "https://cdn.example.com/notebook.png")

    def test_name_is_stored_as_given(self):
        created = self._create(name=" Pen ", stock=1)
        self.db.expire_all()
        self.assertEqual(product_service.get_product(self.db, created.id).name, " Pen ")

        with self.assertRaises(DuplicateNameError):
            self._create(name="pen")

    def test_create_defaults_optional_fields(self):
        created = self._create(name="Eraser")
        self.assertEqual(created.stock, 0)
        self.assertEqual(created.unit, "")
        self.assertEqual(created.image, "")

    def test_get_missing_returns_none(self):
        self.assertIsNone(product_service.get_product(self.db, 999))

    def test_create_rejects_case_insensitive_duplicate(self):
        existing = self._create(name="Stapler")
        with self.assertRaises(DuplicateNameError) as ctx:
            self._create(name="  sTaPlEr ")
        self.assertEqual(ctx.exception.existing_id, existing.id)

    def test_create_requires_name(self):
        with self.assertRaises(ValidationError) as ctx:
            self._create(name="   ", stock=1)
        self.assertEqual(ctx.exception.errors[0]["field"], "name")

    def test_create_rejects_negative_stock(self):
        with self.assertRaises(ValidationError):
            self._create(name="Glue", stock=-1)

    def test_list_filters_by_substring_case_insensitively(self):
        self._create(name="Blue Pen")
        self._create(name="Red PEN")
        self._create(name="Pencil Case")
        self._create(name="Marker")

        names = [p.name for p in product_service.list_products(self.db, "pen")]
        self.assertEqual(names, ["Blue Pen", "Red PEN", "Pencil Case"])
        self.assertEqual(len(product_service.list_products(self.db)), 4)

    def test_list_filter_treats_wildcards_literally(self):
        self._create(name="100% Cotton")
        self._create(name="Cotton Swab")
        names = [p.name for p in product_service.list_products(self.db, "0%")]
        self.assertEqual(names, ["100% Cotton"])

    def test_update_missing_product_raises_not_found(self):
        with self.assertRaises(NotFoundError):
            product_service.update_product(self.db, 42, {"name": "Ghost", "stock": 1}, actor="admin")

    def test_update_to_other_products_name_fails(self):
        self._create(name="Tape")
        glue = self._create(name="Glue")
        with self.assertRaises(DuplicateNameError):
            product_service.update_product(
                self.db, glue.id, {"name": "TAPE", "stock": 0}, actor="admin"
            )

    def test_update_to_own_name_succeeds(self):
        tape = self._create(name="Tape", stock=3)
        updated = product_service.update_product(
            self.db, tape.id, {"name": "TAPE", "stock": 3, "brand": "Stick"}, actor="admin"
        )
        self.assertEqual(updated.name, "TAPE")
        self.assertEqual(updated.brand, "Stick")

    def test_update_keeps_unsupplied_fields(self):
        tape = self._create(name="Tape", category="Office", stock=3)
        updated = product_service.update_product(
            self.db, tape.id, {"name": "Tape", "stock": 3}, actor="admin"
        )
        self.assertEqual(updated.category, "Office")

    def test_stock_history_follows_changes(self):
        pen = self._create(name="Pen", stock=10)

        product_service.update_product(self.db, pen.id, {"name": "Pen", "stock": 4}, actor="admin")
        history = load_stock_history(self.db, pen.id)
        self.assertEqual(len(history), 1)
        self.assertEqual(history[0].old_quantity, 10)
        self.assertEqual(history[0].new_quantity, 4)
        self.assertEqual(history[0].user_info, "admin")

        product_service.update_product(self.db, pen.id, {"name": "Pen", "stock": 4}, actor="admin")
        self.assertEqual(len(load_stock_history(self.db, pen.id)), 1)

    def test_failed_history_write_rolls_back_product_update(self):
        pen = self._create(name="Pen", stock=10)
        with patch.object(
            product_service,
            "record_stock_change",
            side_effect=SQLAlchemyError("history insert failed"),
        ):
            with self.assertRaises(StoreError):
                product_service.update_product(
                    self.db, pen.id, {"name": "Pen", "stock": 2}, actor="admin"
                )

        self.db.expire_all()
        self.assertEqual(product_service.get_product(self.db, pen.id).stock, 10)

    def test_delete_removes_product_and_history(self):
        pen = self._create(name="Pen", stock=10)
        product_service.update_product(self.db, pen.id, {"name": "Pen", "stock": 5}, actor="admin")

        product_service.delete_product(self.db, pen.id)

        self.assertIsNone(product_service.get_product(self.db, pen.id))
        self.assertEqual(load_stock_history(self.db, pen.id), [])

    def test_delete_missing_product_raises_not_found(self):
        with self.assertRaises(NotFoundError):
            product_service.delete_product(self.db, 7)

    def test_export_listing_is_ordered_by_id(self):
        first = self._create(name="Zeta")
        second = self._create(name="Alpha")
        ids = [p.id for p in product_service.list_products_for_export(self.db)]
        self.assertEqual(ids, [first.id, second.id])


if __name__ == "__main__":
    unittest.main()
