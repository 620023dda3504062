# Starter catalog for a fresh shop database.

DEFAULT_PRODUCTS = [
    {
        "name": "Rice 5kg",
        "manufacturer": "Premium Rice",
        "category": "Groceries",
        "barcode": "1234567890123",
        "purchase_price": 180.00,
        "selling_price": 220.00,
        "mrp": 220.00,
        "stock_quantity": 150,
        "min_stock_level": 50,
        "added_date": "2024-01-15",
        "expiry_date": "2025-12-31",
        "batch_no": "RC001",
        "hsn_code": "10061000",
    },
    {
        "name": "Cooking Oil 1L",
        "manufacturer": "Pure Oil",
        "category": "Groceries",
        "barcode": "2345678901234",
        "purchase_price": 65.00,
        "selling_price": 78.00,
        "mrp": 78.00,
        "stock_quantity": 75,
        "min_stock_level": 30,
        "added_date": "2024-01-20",
        "expiry_date": "2025-06-30",
        "batch_no": "OL002",
        "hsn_code": "15071000",
    },
]


def seed(conn):
    # only an empty catalog gets the starter products
    row = conn.execute("SELECT COUNT(*) AS n FROM products").fetchone()
    if row and row[0] == 0:
        for p in DEFAULT_PRODUCTS:
            conn.execute(
                """
                INSERT INTO products(
                    name, batch_no, expiry_date, purchase_price, selling_price, mrp,
                    stock_quantity, opening_stock, min_stock_level, category,
                    manufacturer, hsn_code, barcode, added_date
                ) VALUES (?,?,?,?,?,?,?,?,?,?,?,?,?,?)
                """,
                (
                    p["name"], p["batch_no"], p["expiry_date"], p["purchase_price"],
                    p["selling_price"], p["mrp"], p["stock_quantity"], p["stock_quantity"],
                    p["min_stock_level"], p["category"], p["manufacturer"], p["hsn_code"],
                    p["barcode"], p["added_date"],
                ),
            )
        conn.commit()
