from enum import Enum


class OrderStatus(str, Enum):
    DRAFT = "DRAFT"
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    READYFORPROD = "READYFORPROD"
    PRINT = "PRINT"
    PRINT_READY = "PRINT READY"
    PRINT_DONE = "PRINT DONE"
    PRESS_READY = "PRESS READY"
    PRESS = "PRESS"
    PRESS_DONE = "PRESS DONE"
    DTF = "DTF"
    CUTTING_READY = "CUTTING READY"
    CUTTING_IN_PROGRESS = "CUTTING IN PROGRESS"
    CUTTING_DONE = "CUTTING DONE"
    COMPLETED = "COMPLETED"
    DISERAHKAN = "DISERAHKAN"
    ON_HOLD = "ON_HOLD"
    CANCELLED = "CANCELLED"


class ProductionStatus(str, Enum):
    """Values of Order.statusm, the operator-facing sub-status."""
    DESIGN = "DESIGN"
    PRODUCTION = "PRODUCTION"
    PRINT = "PRINT"
    PRINT_DONE = "PRINT DONE"
    PRESS = "PRESS"
    PRESS_DONE = "PRESS DONE"
    DTF = "DTF"
    DTF_DONE = "DTF DONE"
    CUTTING = "CUTTING"
    CUTTING_DONE = "CUTTING DONE"
    COMPLETED = "COMPLETED"
    DELIVERY = "DELIVERY"
    DISERAHKAN = "DISERAHKAN"


class PaymentMark(str, Enum):
    """Values of Order.biaya_tambahan describing the payment state."""
    DP = "DP"
    NO_DP = "NO DP"
    LUNAS = "LUNAS"


class PaymentType(str, Enum):
    DP = "DP"
    FULL = "FULL"
    SETTLEMENT = "SETTLEMENT"


class InvoiceNote(str, Enum):
    NOT_INVOICED = "BELUM DIINVOICEKAN"
    INVOICED = "SUDAH DIINVOICEKAN"


class ApprovalState(str, Enum):
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class AccountType(str, Enum):
    ASSET = "ASSET"
    LIABILITY = "LIABILITY"
    EQUITY = "EQUITY"
    REVENUE = "REVENUE"
    EXPENSE = "EXPENSE"


# balances of these types grow on the debit side
DEBIT_NORMAL_TYPES = {AccountType.ASSET.value, AccountType.EXPENSE.value}


class PeriodStatus(str, Enum):
    OPEN = "OPEN"
    CLOSED = "CLOSED"


class PeriodType(str, Enum):
    MONTHLY = "MONTHLY"
    QUARTERLY = "QUARTERLY"
    YEARLY = "YEARLY"


class JournalStatus(str, Enum):
    DRAFT = "DRAFT"
    POSTED = "POSTED"


class InvoiceStatus(str, Enum):
    UNPAID = "UNPAID"
    PARTIALLY_PAID = "PARTIALLY_PAID"
    PAID = "PAID"


class BillStatus(str, Enum):
    UNPAID = "UNPAID"
    PARTIAL = "PARTIAL"
    PAID = "PAID"


class TransactionType(str, Enum):
    INCOME = "INCOME"
    EXPENSE = "EXPENSE"
    EXPENSE_PAYMENT = "EXPENSE_PAYMENT"


class StockKind(str, Enum):
    PAPER = "PAPER"
    INK = "INK"


class RequestStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
