"""PDV checkout: turns picked lines into a sale or a conditional.

Prices are snapshotted from the product at checkout; client-sent prices are
never trusted. Stock is taken out here, for sales and conditionals alike.
"""
import logging
from datetime import date
from typing import List, Optional

from sqlalchemy.orm import Session

from pdv.core.errors import NotFoundError, ValidationError
from pdv.core.timezone_utils import local_today
from pdv.db.session import atomic
from pdv.models.client import Cliente
from pdv.models.condicional import Condicional
from pdv.models.condicional_item import CondicionalItem
from pdv.models.pedido import Pedido
from pdv.models.product import Produto
from pdv.schemas.pedido import ItemVenda
from pdv.services import estoque, pedidos
from pdv.utils.valores import dinheiro, soma_itens

logger = logging.getLogger(__name__)

CLIENTE_AVULSO = 'Cliente Avulso'

ROTULOS_PAGAMENTO = {
    'money': 'Dinheiro',
    'credit': 'Cartão de Crédito',
    'debit': 'Cartão de Débito',
    'pix': 'PIX',
}


def rotulo_pagamento(codigo: str) -> str:
    codigo = (codigo or '').strip()
    return ROTULOS_PAGAMENTO.get(codigo.lower(), codigo)


def resolver_forma_pagamento(payment_method: Optional[str], payment_methods: Optional[List[str]] = None) -> Optional[str]:
    """Single label for the order: split payments are joined ("PIX, Dinheiro")."""
    if payment_methods:
        rotulos = [rotulo_pagamento(m) for m in payment_methods if m and m.strip()]
        return ', '.join(rotulos) or None
    if payment_method and payment_method.strip():
        return rotulo_pagamento(payment_method)
    return None


def _dados_cliente(db: Session, customer_id: Optional[int]):
    if customer_id is None:
        return None, CLIENTE_AVULSO, ''
    cliente = db.query(Cliente).filter(Cliente.id == customer_id).first()
    if cliente is None:
        raise NotFoundError("Cliente não encontrado")
    return cliente.id, cliente.name, cliente.phone or ''


def _validar_variacao(produto: Produto, item: ItemVenda):
    sizes = produto.sizes or []
    colors = produto.colors or []
    if item.size and sizes and item.size not in sizes:
        raise ValidationError(f"Tamanho {item.size!r} indisponível para {produto.name}")
    if item.color and colors and item.color not in colors:
        raise ValidationError(f"Cor {item.color!r} indisponível para {produto.name}")


def _reservar_itens(db: Session, itens: List[ItemVenda]) -> list:
    """Take every line out of stock and return the snapshot lines."""
    linhas = []
    for item in itens:
        produto = db.query(Produto).filter(Produto.id == item.product_id).first()
        if produto is None:
            raise NotFoundError(f"Produto {item.product_id} não encontrado")
        if produto.status != 'active':
            raise ValidationError(f"Produto {produto.name} está inativo")
        _validar_variacao(produto, item)
        estoque.baixar_estoque(db, produto.id, item.quantity)
        linhas.append({
            'product_id': produto.id,
            'product_name': produto.name,
            'quantity': item.quantity,
            'unit_price': dinheiro(produto.sale_price),
            'size': item.size,
            'color': item.color,
        })
    return linhas


def finalizar_venda(
    db: Session,
    itens: List[ItemVenda],
    customer_id: Optional[int] = None,
    payment_method: Optional[str] = None,
    payment_methods: Optional[List[str]] = None,
) -> Pedido:
    if not itens:
        raise ValidationError("Adicione pelo menos um item ao carrinho")
    forma = resolver_forma_pagamento(payment_method, payment_methods)
    if not forma:
        raise ValidationError("Selecione a forma de pagamento")

    with atomic(db):
        cid, nome, telefone = _dados_cliente(db, customer_id)
        linhas = _reservar_itens(db, itens)
        pedido = pedidos.criar_pedido(
            db,
            prefixo='VEND',
            linhas=linhas,
            customer_id=cid,
            customer_name=nome,
            customer_phone=telefone,
            payment_method=forma,
            status='confirmed',
        )
    db.refresh(pedido)
    logger.info("venda %s registrada: %s itens total=%s pagamento=%r", pedido.order_number, len(linhas), pedido.total_amount, forma)
    return pedido


def abrir_condicional(
    db: Session,
    itens: List[ItemVenda],
    customer_id: Optional[int] = None,
    due_date: Optional[date] = None,
    hoje: Optional[date] = None,
) -> Condicional:
    if not itens:
        raise ValidationError("Adicione pelo menos um item ao carrinho")
    if due_date is None:
        raise ValidationError("Informe a data prevista de devolução")
    if due_date < (hoje or local_today()):
        raise ValidationError("A data de devolução não pode estar no passado")

    with atomic(db):
        cid, nome, telefone = _dados_cliente(db, customer_id)
        linhas = _reservar_itens(db, itens)
        cond = Condicional(
            customer_id=cid,
            customer_name=nome,
            customer_phone=telefone,
            due_date=due_date,
            status='active',
        )
        for ln in linhas:
            cond.items.append(CondicionalItem(**ln))
        cond.total_value = soma_itens(cond.items)
        db.add(cond)
    db.refresh(cond)
    logger.info("condicional %s aberta para %r: %s itens total=%s devolução=%s", cond.id, nome, len(linhas), cond.total_value, due_date)
    return cond
