import os
from pathlib import Path

# Security settings
SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key-change")
ALGORITHM = os.getenv("ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", 60 * 8))

# Storage
DATA_DIR = Path(os.getenv("POS_DATA_DIR", "data"))
LOG_DIR = Path(os.getenv("POS_LOG_DIR", str(DATA_DIR / "logs")))
SNAPSHOT_FILE = "pos_snapshot.json"

# Shop defaults, overridden by the persisted shop settings
SHOP_NAME = os.getenv("POS_SHOP_NAME", "GODWILL SHOP")
RECEIPT_FOOTER = os.getenv("POS_RECEIPT_FOOTER", "Thank you for shopping with us!")
SYSTEM_PASSWORD = os.getenv("POS_SYSTEM_PASSWORD", "change-me")
INVENTORY_PASSWORD = os.getenv("POS_INVENTORY_PASSWORD", "change-me")
CURRENCY = os.getenv("POS_CURRENCY", "Ksh")
RECEIPT_PREFIX = os.getenv("POS_RECEIPT_PREFIX", "GW")

# Flat VAT rate shown on receipts; not added to the payable total.
TAX_RATE = 0.08
TOP_ITEMS_LIMIT = 5
