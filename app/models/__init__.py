from app.models.inventory_history import InventoryHistory
from app.models.product import Product

__all__ = ["InventoryHistory", "Product"]
