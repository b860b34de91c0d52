# erp/models/__init__.py
from .customer import *     # Customer
from .user import *         # Role, Permission, User
from .production import *   # CuttingJob
from .inventory import *    # InventoryItem, PaperStock, InkStock, StockRequest, StockLog, Asset, AssetMaintenance
from .order import *        # Order, OrderLog
from .finance import *      # ChartOfAccount, FinancialPeriod, JournalEntry, JournalEntryItem, FinancialTransaction
from .invoice import *      # Invoice
from .payable import *      # Vendor, Bill, BillPayment
from .whatsapp import *     # WhatsAppConfig, WhatsAppTemplate, ChatMessage
