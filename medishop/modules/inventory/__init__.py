from .adjustments import InventoryService

__all__ = ["InventoryService"]
