from .register import PurchaseRegister

__all__ = ["PurchaseRegister"]
