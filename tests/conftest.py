import os

# the app module creates tables at import time; keep that off the real database
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["WHATSAPP_NOTIFY_STATUS"] = "false"
os.environ["WHATSAPP_PHONE_NUMBER_ID"] = ""
os.environ["WHATSAPP_ACCESS_TOKEN"] = ""

from datetime import timedelta  # noqa: E402
from decimal import Decimal  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from erp.db import Base, get_db  # noqa: E402
from erp.main import app  # noqa: E402
from erp.models import ChartOfAccount, Customer, FinancialPeriod, Order  # noqa: E402
from erp.utils.dates import utcnow  # noqa: E402


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=eng)
    yield eng
    Base.metadata.drop_all(bind=eng)
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


# ---------- factories ----------
@pytest.fixture
def make_customer(db):
    def make(**kw):
        data = {"nama": "PT Kain Jaya", "telp": "0812-3456-7890", "alamat": "Bandung"}
        data.update(kw)
        customer = Customer(**data)
        db.add(customer)
        db.commit()
        db.refresh(customer)
        return customer
    return make


@pytest.fixture
def make_order(db, make_customer):
    counter = {"n": 0}

    def make(**kw):
        counter["n"] += 1
        if "customer_id" not in kw:
            kw["customer_id"] = make_customer().id
        data = {
            "spk": f"0199{counter['n']:03d}",
            "produk": "PRINT, PRESS",
            "qty": Decimal("10"),
            "nominal": Decimal("100000"),
            "status": "PENDING",
            "statusm": "DESIGN",
        }
        data.update(kw)
        order = Order(**data)
        db.add(order)
        db.commit()
        db.refresh(order)
        return order
    return make


@pytest.fixture
def make_account(db):
    def make(code, name, type):
        acc = ChartOfAccount(code=code, name=name, type=type)
        db.add(acc)
        db.commit()
        db.refresh(acc)
        return acc
    return make


@pytest.fixture
def make_period(db):
    def make(start, end, name="Test period", status="OPEN"):
        period = FinancialPeriod(
            name=name, start_date=start, end_date=end, type="MONTHLY",
            year=start.year, month=start.month, status=status,
        )
        db.add(period)
        db.commit()
        db.refresh(period)
        return period
    return make


@pytest.fixture
def books(make_account, make_period):
    """Default chart of accounts plus an open period around today."""
    today = utcnow().date()
    accounts = {
        "cash": make_account("1100", "Kas", "ASSET"),
        "receivable": make_account("1200", "Piutang", "ASSET"),
        "payable": make_account("2100", "Hutang", "LIABILITY"),
        "equity": make_account("3100", "Modal", "EQUITY"),
        "revenue": make_account("4100", "Pendapatan", "REVENUE"),
        "expense": make_account("5100", "Beban", "EXPENSE"),
    }
    period = make_period(today - timedelta(days=30), today + timedelta(days=30), name="Current")
    return {"accounts": accounts, "period": period}
