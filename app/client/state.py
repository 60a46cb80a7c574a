import logging
import threading
from pathlib import Path
from typing import Any, Callable, Optional

from app.client.api_client import ApiError, InventoryApiClient
from app.client.tasks import DeferredTaskRegistry
from app.config import Settings, get_settings

logger = logging.getLogger(__name__)

_LOG_LEVELS = {
    "info": logging.INFO,
    "success": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.WARNING,
}


def _log_notification(level: str, message: str) -> None:
    logger.log(_LOG_LEVELS.get(level, logging.INFO), message)


def derive_categories(products) -> list[str]:
    return sorted({product.get("category") for product in products if product.get("category")})


def matches_category(product, category: str) -> bool:
    if not category:
        return True
    return (product.get("category") or "").lower() == category.lower()


def matches_name(product, name_filter: str) -> bool:
    if not name_filter:
        return True
    return name_filter.strip().lower() in (product.get("name") or "").lower()


class ProductStateStore:
    """Client-side cache of the product table, synchronized with the API.

    Deletions are optimistic: the row disappears at once and the DELETE is
    only sent after ``undo_seconds`` unless :meth:`undo_delete` runs first.
    Failures never clear what is already shown; they are reported through
    ``notify(level, message)``.
    """

    def __init__(
        self,
        api,
        *,
        undo_seconds: float = 5.0,
        notify: Optional[Callable[[str, str], None]] = None,
        tasks: Optional[DeferredTaskRegistry] = None,
    ):
        self.api = api
        self.undo_seconds = undo_seconds
        self._notify = notify or _log_notification
        self._tasks = tasks if tasks is not None else DeferredTaskRegistry()
        self._lock = threading.RLock()

        self.products: list[dict[str, Any]] = []
        self.categories: list[str] = []
        self.name_filter = ""
        self.category_filter = ""
        self.history: dict[int, list[dict[str, Any]]] = {}
        self._pending_deletes: dict[int, tuple[int, dict[str, Any]]] = {}

    @classmethod
    def from_settings(
        cls,
        settings: Optional[Settings] = None,
        *,
        notify: Optional[Callable[[str, str], None]] = None,
    ) -> "ProductStateStore":
        settings = settings or get_settings()
        api = InventoryApiClient(
            settings.CLIENT_API_BASE_URL,
            timeout=settings.CLIENT_REQUEST_TIMEOUT_SECONDS,
        )
        return cls(api, undo_seconds=settings.CLIENT_UNDO_DELETE_SECONDS, notify=notify)

    def _report(self, level: str, message: str) -> None:
        try:
            self._notify(level, message)
        except (RuntimeError, ValueError, TypeError):
            logger.warning("Notification handler failed for: %s", message)

    def _index_of(self, product_id: int) -> Optional[int]:
        for idx, product in enumerate(self.products):
            if product.get("id") == product_id:
                return idx
        return None

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def refresh(self) -> bool:
        try:
            all_products = self.api.list_products()
            if self.name_filter:
                listed = self.api.list_products(self.name_filter)
            else:
                listed = all_products
        except ApiError as exc:
            logger.warning("Error fetching products: %s", exc.message)
            self._report("error", "Failed to load products.")
            return False

        with self._lock:
            self.categories = derive_categories(all_products)
            self.products = [
                product
                for product in listed
                if matches_category(product, self.category_filter)
                and product.get("id") not in self._pending_deletes
            ]
        return True

    def set_name_filter(self, value: Optional[str]) -> bool:
        self.name_filter = (value or "").strip()
        return self.refresh()

    def set_category_filter(self, value: Optional[str]) -> bool:
        self.category_filter = (value or "").strip()
        return self.refresh()

    def load_history(self, product_id: int) -> list[dict[str, Any]]:
        try:
            records = self.api.get_history(product_id)
        except ApiError as exc:
            logger.warning("Error fetching history for %s: %s", product_id, exc.message)
            self._report("error", "Failed to load inventory history.")
            return self.history.get(product_id, [])
        with self._lock:
            self.history[product_id] = list(records or [])
            return self.history[product_id]

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def add_product(self, fields) -> Optional[dict[str, Any]]:
        try:
            created = self.api.create_product(fields)
        except ApiError as exc:
            logger.warning("Add failed: %s", exc.message)
            self._report("error", "Failed to add product: {}".format(exc.message))
            return None

        with self._lock:
            self.products.insert(0, created)
            if created.get("category") and created["category"] not in self.categories:
                self.categories = sorted(set(self.categories) | {created["category"]})
        self._report("success", "Product added")
        return created

    def save_product(self, product_id: int, fields) -> Optional[dict[str, Any]]:
        try:
            updated = self.api.update_product(product_id, fields)
        except ApiError as exc:
            logger.warning("Update of %s failed: %s", product_id, exc.message)
            self._report("error", "Failed to update product: {}".format(exc.message))
            return None

        with self._lock:
            idx = self._index_of(product_id)
            visible = matches_name(updated, self.name_filter) and matches_category(
                updated, self.category_filter
            )
            if idx is not None:
                if visible:
                    self.products[idx] = updated
                else:
                    del self.products[idx]
            self.history.pop(product_id, None)
        self._report("success", "Product updated")
        return updated

    # ------------------------------------------------------------------
    # Undoable deletion
    # ------------------------------------------------------------------

    def request_delete(self, product_id: int) -> bool:
        with self._lock:
            if product_id in self._pending_deletes:
                return False
            idx = self._index_of(product_id)
            if idx is None:
                return False
            product = self.products.pop(idx)
            self._pending_deletes[product_id] = (idx, product)

        armed = self._tasks.schedule(
            product_id,
            self.undo_seconds,
            lambda: self._commit_delete(product_id),
        )
        if not armed:
            self._restore(product_id)
            return False
        self._report("success", "Product deleted")
        return True

    def undo_delete(self, product_id: int) -> bool:
        if not self._tasks.cancel(product_id):
            return False
        self._restore(product_id)
        self._report("info", "Deletion undone")
        return True

    def is_delete_pending(self, product_id: int) -> bool:
        return self._tasks.is_pending(product_id)

    def _restore(self, product_id: int) -> None:
        with self._lock:
            entry = self._pending_deletes.pop(product_id, None)
            if entry is None:
                return
            idx, product = entry
            self.products.insert(min(idx, len(self.products)), product)

    def _commit_delete(self, product_id: int) -> None:
        try:
            self.api.delete_product(product_id)
        except ApiError as exc:
            logger.warning("Final delete of %s failed: %s", product_id, exc.message)
            if exc.status_code == 404:
                with self._lock:
                    self._pending_deletes.pop(product_id, None)
                return
            self._restore(product_id)
            self._report("error", "Failed to delete product on server")
            return

        with self._lock:
            self._pending_deletes.pop(product_id, None)
            self.history.pop(product_id, None)

    # ------------------------------------------------------------------
    # Import / export
    # ------------------------------------------------------------------

    def import_file(self, path, *, dry_run: bool = False) -> Optional[dict[str, Any]]:
        try:
            result = self.api.import_file(path, dry_run=dry_run)
        except ApiError as exc:
            logger.warning("Import failed: %s", exc.message)
            if exc.status_code:
                self._report("error", "Import failed: {} {}".format(exc.status_code, exc.message))
            else:
                self._report("error", "Import failed")
            return None

        self._report(
            "success",
            "Import finished: added {}, skipped {}".format(
                result.get("added", 0),
                result.get("skipped", 0),
            ),
        )
        self.name_filter = ""
        self.category_filter = ""
        self.refresh()
        return result

    def export_csv(self, destination=None) -> Optional[str]:
        try:
            content = self.api.export_csv()
        except ApiError as exc:
            logger.warning("Export failed: %s", exc.message)
            self._report("error", "Export failed")
            return None
        if destination is not None:
            Path(destination).write_text(content, encoding="utf-8")
        return content

    def visible_products(self) -> list[dict[str, Any]]:
        with self._lock:
            return list(self.products)

    def close(self, *, commit_pending: bool = False) -> None:
        """Drop every armed deletion timer.

        With ``commit_pending`` the deletions are sent right away instead of
        being abandoned.
        """
        for product_id in self._tasks.pending_keys():
            if not self._tasks.cancel(product_id):
                continue
            if commit_pending:
                self._commit_delete(product_id)
            else:
                self._restore(product_id)


__all__ = ["ProductStateStore", "derive_categories", "matches_category", "matches_name"]
