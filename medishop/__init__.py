"""MediShop POS: billing, stock ledger and inventory core for a small pharmacy/retail counter."""

__version__ = "1.0.0"
