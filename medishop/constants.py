# medishop/constants.py
APP_NAME = "MediShop POS"

DATA_DIR = "data"
DB_FILE_NAME = "medishop.db"

TABLE_SCHEMA_VERSION = "schema_version"
SCHEMA_VERSION = "1.0.0"

# ---- Bill numbering ----
BILL_PREFIX = "MS"
SUPPLIER_RETURN_PREFIX = "PURCHASE-"
CUSTOMER_RETURN_PREFIX = "CUSTOMER-"
SYNTHETIC_BILL_PREFIXES = (SUPPLIER_RETURN_PREFIX, CUSTOMER_RETURN_PREFIX)

# ---- Ledger references ----
BILL_RETURN_REF_PREFIX = "RETURN-"
SUPPLIER_RETURN_REF_PREFIX = "RET-"
CUSTOMER_RETURN_REF = "CUST-RET"
ADJUSTMENT_REF_PREFIX = "ADJ-"
EDIT_REF_PREFIX = "EDIT-"

# ---- Walk-in sentinel (never persisted) ----
WALK_IN_CUSTOMER_ID = 0
WALK_IN_CUSTOMER_NAME = "Walk-in Customer"

# ---- Enumerations ----
TXN_PURCHASE = "purchase"
TXN_SALE = "sale"
TXN_RETURN = "return"
TXN_ADJUSTMENT = "adjustment"
TXN_TYPES = (TXN_PURCHASE, TXN_SALE, TXN_RETURN, TXN_ADJUSTMENT)

PAYMENT_MODES = ("cash", "card", "upi", "wallet")

BILL_KIND_SALE = "sale"
BILL_KIND_SUPPLIER_RETURN = "supplier_return"
BILL_KIND_CUSTOMER_RETURN = "customer_return"

BILL_STATUS_COMMITTED = "committed"
BILL_STATUS_RETURNED = "returned"

# ---- Defaults ----
DEFAULT_GST_RATE = 18.0
EXPIRY_ALERT_DAYS = 2
EXPIRY_REPORT_DAYS = 30
DEFAULT_STAFF_NAME = "Current User"
