import sqlite3

SQL = r"""
PRAGMA foreign_keys = ON;

/* ======================== CATALOG ======================== */

CREATE TABLE IF NOT EXISTS products (
    product_id      INTEGER PRIMARY KEY AUTOINCREMENT,
    name            TEXT NOT NULL,
    batch_no        TEXT NOT NULL DEFAULT '',
    expiry_date     DATE,                       -- ISO 'YYYY-MM-DD'; NULL for generic retail
    purchase_price  REAL NOT NULL DEFAULT 0 CHECK (purchase_price >= 0),
    selling_price   REAL NOT NULL DEFAULT 0 CHECK (selling_price >= 0),
    mrp             REAL NOT NULL DEFAULT 0 CHECK (mrp >= 0),
    stock_quantity  INTEGER NOT NULL DEFAULT 0 CHECK (stock_quantity >= 0),
    opening_stock   INTEGER NOT NULL DEFAULT 0 CHECK (opening_stock >= 0),
    min_stock_level INTEGER NOT NULL DEFAULT 0 CHECK (min_stock_level >= 0),
    category        TEXT,
    manufacturer    TEXT,
    hsn_code        TEXT,
    barcode         TEXT,
    added_date      DATE NOT NULL DEFAULT CURRENT_DATE
);
CREATE INDEX IF NOT EXISTS idx_products_name   ON products(name);
CREATE INDEX IF NOT EXISTS idx_products_expiry ON products(expiry_date);

/* ======================== PARTIES ======================== */

CREATE TABLE IF NOT EXISTS customers (
    customer_id       INTEGER PRIMARY KEY AUTOINCREMENT,
    name              TEXT NOT NULL,
    phone             TEXT NOT NULL,
    email             TEXT,
    address           TEXT,
    registration_date TIMESTAMP NOT NULL,
    total_purchases   REAL NOT NULL DEFAULT 0
);
CREATE INDEX IF NOT EXISTS idx_customers_phone ON customers(phone);

CREATE TABLE IF NOT EXISTS suppliers (
    supplier_id       INTEGER PRIMARY KEY AUTOINCREMENT,
    name              TEXT NOT NULL,
    phone             TEXT NOT NULL DEFAULT '',
    email             TEXT,
    address           TEXT,
    registration_date TIMESTAMP NOT NULL
);

/* ======================== PURCHASE REGISTER ======================== */

CREATE TABLE IF NOT EXISTS purchases (
    purchase_id   INTEGER PRIMARY KEY AUTOINCREMENT,
    supplier_id   INTEGER,
    supplier_name TEXT NOT NULL,               -- denormalized for display
    invoice_no    TEXT NOT NULL,
    date          DATE NOT NULL,
    total_amount  REAL NOT NULL CHECK (total_amount >= 0),
    FOREIGN KEY (supplier_id) REFERENCES suppliers(supplier_id),
    UNIQUE (supplier_id, invoice_no)
);
CREATE INDEX IF NOT EXISTS idx_purchases_date ON purchases(date);

CREATE TABLE IF NOT EXISTS purchase_items (
    item_id        INTEGER PRIMARY KEY AUTOINCREMENT,
    purchase_id    INTEGER NOT NULL,
    line_no        INTEGER NOT NULL,
    product_id     INTEGER NOT NULL,
    product_name   TEXT NOT NULL,
    quantity       INTEGER NOT NULL CHECK (quantity > 0),
    purchase_price REAL NOT NULL CHECK (purchase_price > 0),
    batch_no       TEXT NOT NULL DEFAULT '',
    expiry_date    DATE,
    FOREIGN KEY (purchase_id) REFERENCES purchases(purchase_id) ON DELETE CASCADE,
    FOREIGN KEY (product_id)  REFERENCES products(product_id)
);
CREATE INDEX IF NOT EXISTS idx_purchase_items_purchase ON purchase_items(purchase_id);
CREATE INDEX IF NOT EXISTS idx_purchase_items_product  ON purchase_items(product_id);

/* ======================== BILLS ======================== */

CREATE TABLE IF NOT EXISTS bills (
    bill_id         INTEGER PRIMARY KEY AUTOINCREMENT,
    bill_number     TEXT NOT NULL UNIQUE,
    bill_kind       TEXT NOT NULL DEFAULT 'sale'
                    CHECK (bill_kind IN ('sale','supplier_return','customer_return')),
    status          TEXT NOT NULL DEFAULT 'committed'
                    CHECK (status IN ('committed','returned')),
    date            DATE NOT NULL,
    time            TEXT NOT NULL,
    customer_id     INTEGER,                    -- NULL for walk-in
    customer_name   TEXT,
    subtotal        REAL NOT NULL,
    bill_discount_pct REAL NOT NULL DEFAULT 0,
    total_discount  REAL NOT NULL DEFAULT 0,
    gst_pct         REAL NOT NULL DEFAULT 0,
    gst_amount      REAL NOT NULL DEFAULT 0,
    return_amount   REAL NOT NULL DEFAULT 0,
    total_amount    REAL NOT NULL,
    payment_mode    TEXT NOT NULL CHECK (payment_mode IN ('cash','card','upi','wallet')),
    paid_amount     REAL NOT NULL DEFAULT 0,
    change_amount   REAL NOT NULL DEFAULT 0,
    staff_id        TEXT,
    staff_name      TEXT,
    FOREIGN KEY (customer_id) REFERENCES customers(customer_id)
);
CREATE INDEX IF NOT EXISTS idx_bills_date     ON bills(date);
CREATE INDEX IF NOT EXISTS idx_bills_customer ON bills(customer_id);

/* sold and returned lines share one table, discriminated by line_kind */
CREATE TABLE IF NOT EXISTS bill_items (
    item_id       INTEGER PRIMARY KEY AUTOINCREMENT,
    bill_id       INTEGER NOT NULL,
    line_kind     TEXT NOT NULL CHECK (line_kind IN ('sale','return')),
    line_no       INTEGER NOT NULL,
    product_id    INTEGER NOT NULL,
    product_name  TEXT NOT NULL,
    batch_no      TEXT NOT NULL DEFAULT '',
    quantity      INTEGER NOT NULL CHECK (quantity > 0),
    selling_price REAL NOT NULL CHECK (selling_price >= 0),
    mrp           REAL NOT NULL DEFAULT 0,
    discount_pct  REAL NOT NULL DEFAULT 0 CHECK (discount_pct >= 0 AND discount_pct <= 100),
    gst_rate      REAL NOT NULL DEFAULT 0,
    line_total    REAL NOT NULL CHECK (line_total >= 0),
    FOREIGN KEY (bill_id)    REFERENCES bills(bill_id) ON DELETE CASCADE,
    FOREIGN KEY (product_id) REFERENCES products(product_id)
);
CREATE INDEX IF NOT EXISTS idx_bill_items_bill    ON bill_items(bill_id);
CREATE INDEX IF NOT EXISTS idx_bill_items_product ON bill_items(product_id);

/* ======================== STOCK LEDGER ======================== */

CREATE TABLE IF NOT EXISTS stock_transactions (
    transaction_id INTEGER PRIMARY KEY AUTOINCREMENT,
    txn_type       TEXT NOT NULL CHECK (txn_type IN ('purchase','sale','return','adjustment')),
    product_id     INTEGER NOT NULL,
    product_name   TEXT NOT NULL,
    quantity       INTEGER NOT NULL,            -- signed delta
    date           DATE NOT NULL,
    reference      TEXT NOT NULL DEFAULT '',
    notes          TEXT,
    ref_table      TEXT CHECK (ref_table IN ('purchase_items','bill_items')),
    ref_item_id    INTEGER,
    posted_at      TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    FOREIGN KEY (product_id) REFERENCES products(product_id)
);
CREATE INDEX IF NOT EXISTS idx_stock_txn_product   ON stock_transactions(product_id);
CREATE INDEX IF NOT EXISTS idx_stock_txn_date      ON stock_transactions(date);
CREATE INDEX IF NOT EXISTS idx_stock_txn_reference ON stock_transactions(reference);

/* append-only: the ledger is never edited */
DROP TRIGGER IF EXISTS trg_stock_transactions_no_update;
CREATE TRIGGER trg_stock_transactions_no_update
BEFORE UPDATE ON stock_transactions
BEGIN
    SELECT RAISE(ABORT, 'stock_transactions is append-only');
END;

/* ======================== VERSION ======================== */

CREATE TABLE IF NOT EXISTS schema_version (
    id      INTEGER PRIMARY KEY CHECK (id = 1),
    version TEXT NOT NULL
);
"""


def apply_schema(conn: sqlite3.Connection) -> None:
    """Apply the (idempotent) schema on an open connection."""
    conn.executescript(SQL)

