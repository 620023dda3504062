from .processor import ReturnProcessor

__all__ = ["ReturnProcessor"]
