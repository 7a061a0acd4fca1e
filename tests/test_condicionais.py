from datetime import date, timezone
from decimal import Decimal

import pytest

from pdv.core.errors import ConflictError, NotFoundError, ValidationError
from pdv.models.condicional import Condicional
from pdv.models.condicional_item import CondicionalItem
from pdv.models.pedido import Pedido
from pdv.models.product import Produto
from pdv.schemas.pedido import ItemVenda
from pdv.services import condicionais, dashboard, pedidos
from pdv.services.checkout import finalizar_venda
from pdv.services.condicionais import processar_condicional, status_efetivo
from pdv.services.periodos import resolver_periodo


def _stock(db, produto_id):
    db.expire_all()
    return db.get(Produto, produto_id).stock


def _snapshot(db):
    db.expire_all()
    return {
        "stock": sorted((p.id, p.stock) for p in db.query(Produto).all()),
        "orders": db.query(Pedido).count(),
        "conds": sorted((c.id, c.status, str(c.total_value)) for c in db.query(Condicional).all()),
        "items": db.query(CondicionalItem).count(),
    }


@pytest.fixture
def tres_itens(make_produto, make_condicional):
    a = make_produto(stock=5, sale_price=Decimal("50.00"))
    b = make_produto(stock=3, sale_price=Decimal("30.00"))
    c = make_produto(stock=0, sale_price=Decimal("20.00"))
    cond = make_condicional([(a, 2, "50.00"), (b, 1, "30.00"), (c, 3, "20.00")])
    return cond, a, b, c


# ---------- sell ----------

def test_sell_subset_creates_order_and_returns_the_rest(db, tres_itens):
    cond, a, b, c = tres_itens
    item_a, item_b, item_c = cond.items
    res = processar_condicional(db, cond.id, "sell", [item_a.id, item_b.id], "PIX")

    assert res.status == "sold"
    assert res.sold == 2
    assert res.returned == 1
    assert res.remaining == 0

    pedido = db.get(Pedido, res.order_id)
    # 2 x 50 + 1 x 30
    assert pedido.total_amount == Decimal("130.00")
    assert pedido.payment_method == "PIX"
    assert pedido.status == "confirmed"
    assert pedido.order_number.startswith("PDV-")
    assert sorted(it.product_id for it in pedido.items) == sorted([a.id, b.id])

    # only the unselected product goes back to stock
    assert _stock(db, a.id) == 5
    assert _stock(db, b.id) == 3
    assert _stock(db, c.id) == 3

    db.expire_all()
    cond = db.get(Condicional, cond.id)
    assert cond.status == "sold"
    assert cond.items == []
    assert cond.total_value == Decimal("0")
    assert db.query(CondicionalItem).count() == 0


def test_sell_everything(db, tres_itens):
    cond, a, b, c = tres_itens
    res = processar_condicional(db, cond.id, "sell", [it.id for it in cond.items], "Dinheiro")
    assert res.returned == 0
    assert res.message == "Condicional finalizada como venda com sucesso!"
    assert db.get(Pedido, res.order_id).total_amount == Decimal("190.00")
    assert _stock(db, c.id) == 0


def test_sell_requires_payment_method(db, tres_itens):
    cond = tres_itens[0]
    antes = _snapshot(db)
    for forma in (None, "", "   "):
        with pytest.raises(ValidationError) as exc:
            processar_condicional(db, cond.id, "sell", [cond.items[0].id], forma)
        assert exc.value.message == "Nenhuma forma de pagamento informada"
    assert _snapshot(db) == antes


# ---------- return ----------

def test_return_subset_keeps_the_rest(db, tres_itens):
    cond, a, b, c = tres_itens
    item_a = cond.items[0]
    res = processar_condicional(db, cond.id, "return", [item_a.id])

    assert res.status == "active"
    assert res.returned == 1
    assert res.remaining == 2
    # 1 x 30 + 3 x 20
    assert res.total_value == 90.0
    assert res.order_id is None

    assert _stock(db, a.id) == 7
    assert _stock(db, b.id) == 3

    cond = db.get(Condicional, cond.id)
    assert cond.status == "active"
    assert cond.total_value == Decimal("90.00")
    assert sorted(it.product_id for it in cond.items) == sorted([b.id, c.id])
    assert db.query(Pedido).count() == 0


def test_return_everything_closes_conditional(db, tres_itens):
    cond, a, b, c = tres_itens
    res = processar_condicional(db, cond.id, "return", [it.id for it in cond.items])
    assert res.status == "returned"
    assert res.remaining == 0
    assert (_stock(db, a.id), _stock(db, b.id), _stock(db, c.id)) == (7, 4, 3)
    db.expire_all()
    cond = db.get(Condicional, cond.id)
    assert cond.status == "returned"
    assert cond.total_value == Decimal("0")


def test_return_works_on_overdue_conditional(db, make_produto, make_condicional):
    p = make_produto(stock=0)
    cond = make_condicional([(p, 1, "10.00")], due_date=date(2020, 1, 1))
    assert status_efetivo(cond) == "overdue"
    res = processar_condicional(db, cond.id, "return", [cond.items[0].id])
    assert res.status == "returned"
    assert _stock(db, p.id) == 1


# ---------- validation and conflicts ----------

def test_empty_selection_is_rejected_without_mutation(db, tres_itens):
    cond = tres_itens[0]
    antes = _snapshot(db)
    for acao in ("sell", "return"):
        with pytest.raises(ValidationError) as exc:
            processar_condicional(db, cond.id, acao, [], "PIX")
        assert exc.value.message == "Nenhum item selecionado"
    assert _snapshot(db) == antes


def test_unknown_action(db, tres_itens):
    cond = tres_itens[0]
    with pytest.raises(ValidationError):
        processar_condicional(db, cond.id, "swap", [cond.items[0].id])


def test_item_from_another_conditional(db, make_produto, make_condicional):
    p = make_produto()
    um = make_condicional([(p, 1, "10.00")])
    outro = make_condicional([(p, 1, "10.00")])
    antes = _snapshot(db)
    with pytest.raises(ValidationError):
        processar_condicional(db, um.id, "return", [outro.items[0].id])
    assert _snapshot(db) == antes


def test_missing_conditional(db):
    with pytest.raises(NotFoundError):
        processar_condicional(db, 999, "return", [1])


@pytest.mark.parametrize("status", ["sold", "returned"])
def test_closed_conditional_cannot_be_processed(db, make_produto, make_condicional, status):
    p = make_produto()
    cond = make_condicional([(p, 1, "10.00")], status=status)
    with pytest.raises(ConflictError):
        processar_condicional(db, cond.id, "sell", [cond.items[0].id], "PIX")


def test_second_sell_conflicts(db, tres_itens):
    cond = tres_itens[0]
    ids = [cond.items[0].id]
    processar_condicional(db, cond.id, "sell", ids, "PIX")
    with pytest.raises(ConflictError):
        processar_condicional(db, cond.id, "sell", ids, "PIX")
    assert db.query(Pedido).count() == 1


# ---------- atomicity ----------

def test_failure_mid_sell_rolls_everything_back(db, tres_itens, monkeypatch):
    cond = tres_itens[0]
    antes = _snapshot(db)

    def quebra(*args, **kwargs):
        raise RuntimeError("falha ao gravar pedido")

    monkeypatch.setattr(pedidos, "criar_pedido", quebra)
    with pytest.raises(RuntimeError):
        processar_condicional(db, cond.id, "sell", [cond.items[0].id], "PIX")

    # the unselected items were already back in stock when the order failed
    assert _snapshot(db) == antes


def test_failure_mid_return_rolls_everything_back(db, tres_itens, monkeypatch):
    cond = tres_itens[0]
    antes = _snapshot(db)
    chamadas = []
    original = condicionais.estoque.devolver_estoque

    def segunda_falha(db_, produto_id, quantidade):
        chamadas.append(produto_id)
        if len(chamadas) == 2:
            raise NotFoundError(f"Produto {produto_id} não encontrado")
        original(db_, produto_id, quantidade)

    monkeypatch.setattr(condicionais.estoque, "devolver_estoque", segunda_falha)
    with pytest.raises(NotFoundError):
        processar_condicional(db, cond.id, "return", [it.id for it in cond.items])
    assert _snapshot(db) == antes


# ---------- effective status ----------

class _Cond:
    def __init__(self, status, due_date):
        self.status = status
        self.due_date = due_date


@pytest.mark.parametrize(
    "status,due,esperado",
    [
        ("active", date(2024, 5, 10), "active"),
        ("active", date(2024, 5, 9), "overdue"),
        ("overdue", date(2024, 6, 1), "overdue"),
        ("sold", date(2024, 1, 1), "sold"),
        ("returned", date(2024, 1, 1), "returned"),
    ],
)
def test_status_efetivo(status, due, esperado):
    assert status_efetivo(_Cond(status, due), date(2024, 5, 10)) == esperado


# ---------- payment labels ----------

def test_conditional_sale_uses_same_payment_label_as_pdv(db, make_produto, make_condicional):
    p = make_produto(stock=5, sale_price=Decimal("10.00"))
    venda = finalizar_venda(db, [ItemVenda(product_id=p.id)], payment_method="pix")
    cond = make_condicional([(p, 1, "30.00")])
    res = processar_condicional(db, cond.id, "sell", [cond.items[0].id], "pix")
    assert db.get(Pedido, res.order_id).payment_method == "PIX"

    for pedido_id in (venda.id, res.order_id):
        pedidos.atualizar_status(db, pedido_id, "delivered")

    periodo = resolver_periodo("today", tz=timezone.utc)
    assert dashboard.metodos_pagamento(db, periodo) == [{"method": "PIX", "count": 2, "total": 40.0}]
