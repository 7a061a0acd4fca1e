from datetime import date
from decimal import Decimal

import pytest

from pdv.core.errors import ConflictError, NotFoundError, ValidationError
from pdv.models.condicional import Condicional
from pdv.models.pedido import Pedido
from pdv.models.product import Produto
from pdv.schemas.pedido import ItemVenda
from pdv.services import estoque
from pdv.services.checkout import (
    abrir_condicional,
    finalizar_venda,
    resolver_forma_pagamento,
)


def _stock(db, produto_id):
    db.expire_all()
    return db.get(Produto, produto_id).stock


def test_sale_snapshots_price_and_decrements_stock(db, make_produto, make_cliente):
    p = make_produto(stock=4, sale_price=Decimal("39.90"))
    cliente = make_cliente()
    pedido = finalizar_venda(db, [ItemVenda(product_id=p.id, quantity=3)], customer_id=cliente.id, payment_method="pix")

    assert pedido.order_number.startswith("VEND-")
    assert pedido.status == "confirmed"
    assert pedido.payment_method == "PIX"
    assert pedido.customer_name == cliente.name
    assert pedido.total_amount == Decimal("119.70")
    assert pedido.items[0].unit_price == Decimal("39.90")
    assert pedido.items[0].total_price == Decimal("119.70")
    assert _stock(db, p.id) == 1


def test_sale_without_customer_is_walk_in(db, make_produto):
    p = make_produto()
    pedido = finalizar_venda(db, [ItemVenda(product_id=p.id)], payment_method="Dinheiro")
    assert pedido.customer_id is None
    assert pedido.customer_name == "Cliente Avulso"


def test_sale_insufficient_stock_writes_nothing(db, make_produto):
    ok = make_produto(stock=5)
    pouco = make_produto(stock=1, name="Vestido")
    with pytest.raises(ConflictError) as exc:
        finalizar_venda(
            db,
            [ItemVenda(product_id=ok.id, quantity=2), ItemVenda(product_id=pouco.id, quantity=2)],
            payment_method="pix",
        )
    assert "Estoque insuficiente para Vestido" in exc.value.message
    assert _stock(db, ok.id) == 5
    assert _stock(db, pouco.id) == 1
    assert db.query(Pedido).count() == 0


def test_sale_validations(db, make_produto):
    p = make_produto()
    with pytest.raises(ValidationError) as exc:
        finalizar_venda(db, [], payment_method="pix")
    assert exc.value.message == "Adicione pelo menos um item ao carrinho"
    with pytest.raises(ValidationError) as exc:
        finalizar_venda(db, [ItemVenda(product_id=p.id)])
    assert exc.value.message == "Selecione a forma de pagamento"
    with pytest.raises(NotFoundError):
        finalizar_venda(db, [ItemVenda(product_id=p.id)], customer_id=42, payment_method="pix")
    with pytest.raises(NotFoundError):
        finalizar_venda(db, [ItemVenda(product_id=999)], payment_method="pix")
    assert _stock(db, p.id) == 10


def test_sale_rejects_inactive_product_and_unknown_variation(db, make_produto):
    inativo = make_produto(status="inactive")
    camiseta = make_produto(sizes=["P", "M"], colors=["Azul"])
    with pytest.raises(ValidationError):
        finalizar_venda(db, [ItemVenda(product_id=inativo.id)], payment_method="pix")
    with pytest.raises(ValidationError):
        finalizar_venda(db, [ItemVenda(product_id=camiseta.id, size="GG")], payment_method="pix")
    with pytest.raises(ValidationError):
        finalizar_venda(db, [ItemVenda(product_id=camiseta.id, color="Verde")], payment_method="pix")
    pedido = finalizar_venda(db, [ItemVenda(product_id=camiseta.id, size="M", color="Azul")], payment_method="pix")
    assert (pedido.items[0].size, pedido.items[0].color) == ("M", "Azul")


def test_split_payment_label():
    assert resolver_forma_pagamento(None, ["pix", "money"]) == "PIX, Dinheiro"
    assert resolver_forma_pagamento("credit") == "Cartão de Crédito"
    assert resolver_forma_pagamento("Vale", None) == "Vale"
    assert resolver_forma_pagamento("  ", []) is None


def test_open_conditional_takes_items_out_of_stock(db, make_produto, make_cliente):
    p = make_produto(stock=3, sale_price=Decimal("80.00"))
    q = make_produto(stock=2, sale_price=Decimal("25.50"))
    cliente = make_cliente()
    cond = abrir_condicional(
        db,
        [ItemVenda(product_id=p.id, quantity=2), ItemVenda(product_id=q.id)],
        customer_id=cliente.id,
        due_date=date(2024, 3, 10),
        hoje=date(2024, 3, 1),
    )
    assert cond.status == "active"
    assert cond.total_value == Decimal("185.50")
    assert cond.customer_phone == cliente.phone
    assert len(cond.items) == 2
    assert _stock(db, p.id) == 1
    assert _stock(db, q.id) == 1


def test_open_conditional_validations(db, make_produto):
    p = make_produto(stock=1)
    with pytest.raises(ValidationError) as exc:
        abrir_condicional(db, [ItemVenda(product_id=p.id)], due_date=None)
    assert exc.value.message == "Informe a data prevista de devolução"
    with pytest.raises(ValidationError):
        abrir_condicional(db, [ItemVenda(product_id=p.id)], due_date=date(2024, 2, 28), hoje=date(2024, 3, 1))
    with pytest.raises(ConflictError):
        abrir_condicional(db, [ItemVenda(product_id=p.id, quantity=2)], due_date=date(2024, 3, 1), hoje=date(2024, 3, 1))
    assert db.query(Condicional).count() == 0
    assert _stock(db, p.id) == 1


# ---------- stock ledger ----------

def test_baixar_estoque_is_guarded(db, make_produto):
    p = make_produto(stock=2)
    estoque.baixar_estoque(db, p.id, 2)
    db.commit()
    assert _stock(db, p.id) == 0
    with pytest.raises(ConflictError):
        estoque.baixar_estoque(db, p.id, 1)
    with pytest.raises(NotFoundError):
        estoque.baixar_estoque(db, 999, 1)
    with pytest.raises(NotFoundError):
        estoque.devolver_estoque(db, 999, 1)


def test_low_stock_classification(make_produto):
    assert estoque.estoque_baixo(make_produto(stock=2, min_stock=2))
    assert not estoque.estoque_baixo(make_produto(stock=3, min_stock=2))
    assert not estoque.estoque_baixo(make_produto(stock=0, min_stock=2))
    assert estoque.sem_estoque(make_produto(stock=0))
    # no min_stock: LOW_STOCK_DEFAULT (5)
    assert estoque.estoque_baixo(make_produto(stock=5, min_stock=None))
