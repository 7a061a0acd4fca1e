"""Conditional (consignment) processing.

A conditional holds items that already left stock. Processing it either
sells part of the items (the rest goes back to stock and the conditional is
closed) or returns part of them (the rest stays with the customer).

The whole call runs in one transaction: if any step fails nothing is
written, so stock, orders and the conditional never disagree.
"""
import logging
from datetime import date
from typing import Iterable, Optional

from sqlalchemy import and_, or_
from sqlalchemy.orm import Session

from pdv.core.errors import ConflictError, NotFoundError, ValidationError
from pdv.core.timezone_utils import local_today
from pdv.db.session import atomic
from pdv.models.condicional import Condicional
from pdv.schemas.condicional import ResultadoProcessamento
from pdv.services import estoque, pedidos
from pdv.services.checkout import resolver_forma_pagamento
from pdv.utils.valores import dinheiro, soma_itens

logger = logging.getLogger(__name__)

ACAO_VENDER = 'sell'
ACAO_DEVOLVER = 'return'
ACOES = (ACAO_VENDER, ACAO_DEVOLVER)

# stored statuses that still hold items with the customer
STATUS_ABERTOS = ('active', 'overdue')


def status_efetivo(cond, hoje: Optional[date] = None) -> str:
    """Status shown to users: an active conditional past its due date is overdue.

    filtrar_status_efetivo applies the same rule in SQL; the value is never
    persisted.
    """
    if cond.status == 'overdue':
        return 'overdue'
    if cond.status == 'active' and cond.due_date < (hoje or local_today()):
        return 'overdue'
    return cond.status


def filtrar_status_efetivo(query, status: str, hoje: Optional[date] = None):
    """SQL counterpart of status_efetivo for list filters."""
    hoje = hoje or local_today()
    if status == 'overdue':
        return query.filter(or_(
            Condicional.status == 'overdue',
            and_(Condicional.status == 'active', Condicional.due_date < hoje),
        ))
    if status == 'active':
        return query.filter(Condicional.status == 'active', Condicional.due_date >= hoje)
    return query.filter(Condicional.status == status)


def processar_condicional(
    db: Session,
    condicional_id: int,
    acao: str,
    item_ids: Iterable[int],
    forma_pagamento: Optional[str] = None,
) -> ResultadoProcessamento:
    selecionados = set(item_ids or [])
    if not selecionados:
        raise ValidationError("Nenhum item selecionado")
    if acao not in ACOES:
        raise ValidationError(f"Ação inválida: {acao!r} (use 'sell' ou 'return')")
    forma = resolver_forma_pagamento(forma_pagamento) or ''
    if acao == ACAO_VENDER and not forma:
        raise ValidationError("Nenhuma forma de pagamento informada")

    with atomic(db):
        cond = db.query(Condicional).filter(Condicional.id == condicional_id).with_for_update().first()
        if cond is None:
            raise NotFoundError("Condicional não encontrada")
        if cond.status not in STATUS_ABERTOS:
            raise ConflictError(f"Condicional já finalizada ({cond.status})")

        itens = list(cond.items)
        desconhecidos = selecionados - {it.id for it in itens}
        if desconhecidos:
            raise ValidationError(f"Itens não pertencem à condicional: {sorted(desconhecidos)}")
        escolhidos = [it for it in itens if it.id in selecionados]
        restantes = [it for it in itens if it.id not in selecionados]

        if acao == ACAO_VENDER:
            resultado = _vender(db, cond, escolhidos, restantes, forma)
        else:
            resultado = _devolver(db, cond, escolhidos, restantes)

    logger.info(
        "condicional %s processada (%s): vendidos=%s devolvidos=%s restantes=%s status=%s",
        condicional_id, acao, resultado.sold, resultado.returned, resultado.remaining, resultado.status,
    )
    return resultado


def _vender(db: Session, cond: Condicional, escolhidos: list, restantes: list, forma: str) -> ResultadoProcessamento:
    # what the customer did not keep goes back to the shelf
    for it in restantes:
        if it.product_id is not None:
            estoque.devolver_estoque(db, it.product_id, it.quantity)

    pedido = pedidos.criar_pedido(
        db,
        prefixo='PDV',
        linhas=[
            {
                'product_id': it.product_id,
                'product_name': it.product_name,
                'quantity': it.quantity,
                'unit_price': it.unit_price,
                'size': it.size,
                'color': it.color,
            }
            for it in escolhidos
        ],
        customer_id=cond.customer_id,
        customer_name=cond.customer_name,
        customer_phone=cond.customer_phone,
        payment_method=forma,
        status='confirmed',
    )

    # every item leaves the conditional, the record itself is kept
    cond.items = []
    cond.total_value = dinheiro(0)
    cond.status = 'sold'
    db.add(cond)

    if restantes:
        msg = f"{len(escolhidos)} item(s) vendido(s) com sucesso! {len(restantes)} item(s) devolvido(s) ao estoque."
    else:
        msg = "Condicional finalizada como venda com sucesso!"
    return ResultadoProcessamento(
        conditional_id=cond.id,
        action=ACAO_VENDER,
        status=cond.status,
        sold=len(escolhidos),
        returned=len(restantes),
        remaining=0,
        total_value=0.0,
        order_id=pedido.id,
        order_number=pedido.order_number,
        message=msg,
    )


def _devolver(db: Session, cond: Condicional, escolhidos: list, restantes: list) -> ResultadoProcessamento:
    for it in escolhidos:
        if it.product_id is not None:
            estoque.devolver_estoque(db, it.product_id, it.quantity)

    cond.items = restantes
    cond.total_value = soma_itens(restantes)
    if not restantes:
        cond.status = 'returned'
        msg = "Condicional marcada como devolvida com sucesso!"
    else:
        msg = f"{len(escolhidos)} item(s) devolvido(s) com sucesso! {len(restantes)} item(s) permanecem na condicional."
    db.add(cond)

    return ResultadoProcessamento(
        conditional_id=cond.id,
        action=ACAO_DEVOLVER,
        status=cond.status,
        returned=len(escolhidos),
        remaining=len(restantes),
        total_value=float(cond.total_value),
        message=msg,
    )
