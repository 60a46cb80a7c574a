from app.client.api_client import ApiError, InventoryApiClient
from app.client.state import ProductStateStore
from app.client.tasks import DeferredTaskRegistry

__all__ = ["ApiError", "DeferredTaskRegistry", "InventoryApiClient", "ProductStateStore"]
