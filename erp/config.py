from decimal import Decimal
from pathlib import Path
from dotenv import load_dotenv
import os

BASE_DIR = Path(__file__).resolve().parent.parent
load_dotenv(BASE_DIR / ".env")  # .env is optional, defaults below apply

APP_NAME = os.getenv("APP_NAME", "PrintShop ERP")
ENV = os.getenv("ENV", "local")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# SQLite file next to the project unless DATABASE_URL points elsewhere
DATABASE_URL = os.getenv(
    "DATABASE_URL",
    "sqlite:///{0}".format((BASE_DIR / "erp.db").as_posix())
)

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-change-me")

# debit/credit totals closer than this are treated as equal
BALANCE_TOLERANCE = Decimal(os.getenv("BALANCE_TOLERANCE", "0.01"))

INVOICE_DUE_DAYS = int(os.getenv("INVOICE_DUE_DAYS", "30"))

# accounts used when payments are journalized automatically
CASH_ACCOUNT_CODE = os.getenv("CASH_ACCOUNT_CODE", "1100")
RECEIVABLE_ACCOUNT_CODE = os.getenv("RECEIVABLE_ACCOUNT_CODE", "1200")
PAYABLE_ACCOUNT_CODE = os.getenv("PAYABLE_ACCOUNT_CODE", "2100")
REVENUE_ACCOUNT_CODE = os.getenv("REVENUE_ACCOUNT_CODE", "4100")

# WhatsApp Cloud API
WHATSAPP_API_URL = os.getenv("WHATSAPP_API_URL", "https://graph.facebook.com/v17.0")
WHATSAPP_PHONE_NUMBER_ID = os.getenv("WHATSAPP_PHONE_NUMBER_ID", "")
WHATSAPP_ACCESS_TOKEN = os.getenv("WHATSAPP_ACCESS_TOKEN", "")
WHATSAPP_NOTIFY_STATUS = os.getenv("WHATSAPP_NOTIFY_STATUS", "false").lower() in ("1", "true", "yes")
WHATSAPP_TIMEOUT = float(os.getenv("WHATSAPP_TIMEOUT", "10"))
