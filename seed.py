# seed.py: base data for a fresh database
import sys
from datetime import date

from sqlalchemy.orm import configure_mappers

from erp import config
from erp.db import Base, engine, SessionLocal
import erp.models  # pull in every model before create_all
from erp.models import ChartOfAccount, FinancialPeriod, Permission, Role, User
from erp.utils.enums import AccountType, PeriodStatus, PeriodType
from erp.utils.security import hash_password

ACCOUNTS = [
    (config.CASH_ACCOUNT_CODE, "Kas & Bank", AccountType.ASSET),
    (config.RECEIVABLE_ACCOUNT_CODE, "Piutang Usaha", AccountType.ASSET),
    ("1300", "Persediaan Bahan", AccountType.ASSET),
    (config.PAYABLE_ACCOUNT_CODE, "Hutang Usaha", AccountType.LIABILITY),
    ("3100", "Modal Pemilik", AccountType.EQUITY),
    (config.REVENUE_ACCOUNT_CODE, "Pendapatan Jasa Cetak", AccountType.REVENUE),
    ("5100", "Beban Bahan Baku", AccountType.EXPENSE),
    ("5200", "Beban Operasional", AccountType.EXPENSE),
]

ROLES = {
    "Admin": (True, ["*"]),
    "Manager": (False, ["orders.approve", "finance.view", "reports.view"]),
    "Marketing": (False, ["orders.create", "orders.edit", "customers.edit"]),
    "Operator": (False, ["production.print", "production.press", "production.cutting", "inventory.request"]),
    "Finance": (False, ["finance.view", "finance.edit", "payments.record"]),
}


def run_seed(reset: bool = False):
    if reset:
        Base.metadata.drop_all(bind=engine)
        print("🗑 All tables dropped")

    configure_mappers()
    Base.metadata.create_all(bind=engine)
    print("✅ Tables ready")

    db = SessionLocal()
    try:
        # --- chart of accounts ---
        for code, name, kind in ACCOUNTS:
            if db.query(ChartOfAccount).filter(ChartOfAccount.code == code).first():
                print(f"ℹ️ Account {code} already exists")
                continue
            db.add(ChartOfAccount(code=code, name=name, type=kind.value))
            print(f"✅ Account {code} {name}")
        db.commit()

        # --- open period for the current month ---
        today = date.today()
        start = today.replace(day=1)
        end = (start.replace(year=start.year + 1, month=1) if start.month == 12
               else start.replace(month=start.month + 1))
        end = date.fromordinal(end.toordinal() - 1)
        overlapping = db.query(FinancialPeriod).filter(
            FinancialPeriod.start_date <= end, FinancialPeriod.end_date >= start).first()
        if overlapping is None:
            db.add(FinancialPeriod(
                name=f"{start:%B %Y}", start_date=start, end_date=end,
                type=PeriodType.MONTHLY.value, year=start.year, month=start.month,
                status=PeriodStatus.OPEN.value, created_by="seed",
            ))
            db.commit()
            print(f"✅ Period {start:%B %Y} opened")
        else:
            print(f"ℹ️ Period {overlapping.name} already covers this month")

        # --- roles ---
        for name, (is_admin, perms) in ROLES.items():
            role = db.query(Role).filter(Role.name == name).first()
            if role is not None:
                continue
            role = Role(name=name, is_admin=is_admin, is_system=True)
            for perm_name in perms:
                perm = db.query(Permission).filter(Permission.name == perm_name).first()
                if perm is None:
                    perm = Permission(name=perm_name)
                    db.add(perm)
                    db.flush()
                role.permissions.append(perm)
            db.add(role)
            db.commit()
            print(f"✅ Role {name}")

        # --- admin user ---
        email, raw_password = "admin@example.com", "admin123"
        if db.query(User).filter(User.email == email).first() is None:
            admin_role = db.query(Role).filter(Role.name == "Admin").first()
            db.add(User(name="Administrator", email=email,
                        password_hash=hash_password(raw_password), role=admin_role))
            db.commit()
            print(f"✅ User created (email='{email}', password='{raw_password}')")
        else:
            print(f"ℹ️ User '{email}' already exists")
    finally:
        db.close()


if __name__ == "__main__":
    run_seed(reset="--reset" in sys.argv)
