# tests/conftest.py
# ---------------------------------------------------------------------
# Ground rules:
# - In-memory SQLite shared through a StaticPool (set before importing pdv)
# - Tables dropped and recreated for every test
# - Factories insert rows directly, without touching stock
# - TestClient gets a fresh cart store per test
# ---------------------------------------------------------------------

import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("LOG_LEVEL", "WARNING")

from datetime import date, datetime, timezone  # noqa: E402
from decimal import Decimal  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from pdv.db import session as db_session  # noqa: E402
from pdv.main import app  # noqa: E402
from pdv.models.client import Cliente  # noqa: E402
from pdv.models.condicional import Condicional  # noqa: E402
from pdv.models.condicional_item import CondicionalItem  # noqa: E402
from pdv.models.pedido import Pedido  # noqa: E402
from pdv.models.product import Produto  # noqa: E402
from pdv.services.carrinho import CarrinhoStore, get_cart_store  # noqa: E402


@pytest.fixture(autouse=True)
def _schema():
    db_session.drop_db()
    db_session.create_db()
    yield


@pytest.fixture
def db():
    s = db_session.SessionLocal()
    try:
        yield s
    finally:
        s.close()


@pytest.fixture
def store():
    return CarrinhoStore()


@pytest.fixture
def client(store):
    app.dependency_overrides[get_cart_store] = lambda: store
    try:
        with TestClient(app) as c:
            yield c
    finally:
        app.dependency_overrides.pop(get_cart_store, None)


# ---------- Factories ----------

@pytest.fixture
def make_produto(db):
    seq = {"n": 0}

    def _make(**kw):
        seq["n"] += 1
        data = {
            "name": f"Produto {seq['n']}",
            "sku": f"SKU-{seq['n']:03d}",
            "sale_price": Decimal("10.00"),
            "stock": 10,
            "min_stock": 2,
            "status": "active",
            "colors": [],
            "sizes": [],
        }
        data.update(kw)
        p = Produto(**data)
        db.add(p)
        db.commit()
        db.refresh(p)
        return p

    return _make


@pytest.fixture
def make_cliente(db):
    def _make(**kw):
        data = {"name": "Maria Souza", "phone": "11999990000"}
        data.update(kw)
        c = Cliente(**data)
        db.add(c)
        db.commit()
        db.refresh(c)
        return c

    return _make


@pytest.fixture
def make_condicional(db):
    """Conditional with items given as (produto, quantity, unit_price)."""

    def _make(itens, due_date=date(2099, 1, 1), status="active", created_at=None, customer=None):
        cond = Condicional(
            customer_id=customer.id if customer else None,
            customer_name=customer.name if customer else "Cliente Avulso",
            customer_phone=customer.phone if customer else "",
            due_date=due_date,
            status=status,
            created_at=created_at or datetime.now(timezone.utc),
        )
        total = Decimal("0")
        for produto, qty, price in itens:
            price = Decimal(str(price))
            cond.items.append(CondicionalItem(
                product_id=produto.id if produto is not None else None,
                product_name=produto.name if produto is not None else "Avulso",
                quantity=qty,
                unit_price=price,
            ))
            total += price * qty
        cond.total_value = total
        db.add(cond)
        db.commit()
        db.refresh(cond)
        return cond

    return _make


@pytest.fixture
def make_pedido(db):
    def _make(total, created_at, status="delivered", payment_method="PIX"):
        p = Pedido(
            order_number=f"VEND-{created_at.timestamp():.0f}",
            customer_name="Cliente Avulso",
            customer_phone="",
            total_amount=Decimal(str(total)),
            payment_method=payment_method,
            status=status,
            created_at=created_at,
        )
        db.add(p)
        db.commit()
        db.refresh(p)
        return p

    return _make
