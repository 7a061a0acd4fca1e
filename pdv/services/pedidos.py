import logging
import time
from typing import Optional

from sqlalchemy.orm import Session

from pdv.core.errors import ConflictError, NotFoundError, ValidationError
from pdv.db.session import atomic
from pdv.models.pedido import Pedido
from pdv.models.pedido_item import PedidoItem
from pdv.services import estoque
from pdv.utils.valores import dinheiro, valor_linha

logger = logging.getLogger(__name__)

STATUS_PEDIDO = ('pending', 'confirmed', 'shipped', 'delivered', 'cancelled')


def novo_numero_pedido(prefixo: str) -> str:
    """VEND-<epoch millis> / PDV-<epoch millis>."""
    return f"{prefixo}-{int(time.time() * 1000)}"


def map_incoming_status(s) -> Optional[str]:
    """Normalize incoming status strings (pt or en) to the stored values.

    Returns None when nothing matches.
    """
    if not s:
        return None
    st = str(s).strip().lower()
    if st in STATUS_PEDIDO:
        return st
    if 'pend' in st:
        return 'pending'
    if 'confirm' in st:
        return 'confirmed'
    if 'envi' in st or 'ship' in st:
        return 'shipped'
    # 'completed' / 'concluído' are finished sales for the dashboard
    if 'entreg' in st or 'deliv' in st or 'conclu' in st or 'complet' in st:
        return 'delivered'
    if 'cancel' in st:
        return 'cancelled'
    return None


def criar_pedido(
    db: Session,
    *,
    prefixo: str,
    linhas: list,
    customer_id: Optional[int],
    customer_name: str,
    customer_phone: Optional[str],
    payment_method: Optional[str],
    status: str = 'confirmed',
) -> Pedido:
    """Add an order and its items to the session (flushed, not committed).

    Each line is a dict with product_id, product_name, quantity, unit_price,
    size and color. total_amount is the sum of the items' total_price.
    """
    pedido = Pedido(
        order_number=novo_numero_pedido(prefixo),
        customer_id=customer_id,
        customer_name=customer_name,
        customer_phone=customer_phone,
        payment_method=payment_method,
        status=status,
    )
    total = dinheiro(0)
    for ln in linhas:
        total_linha = valor_linha(ln['unit_price'], ln['quantity'])
        pedido.items.append(PedidoItem(
            product_id=ln.get('product_id'),
            product_name=ln['product_name'],
            quantity=ln['quantity'],
            unit_price=dinheiro(ln['unit_price']),
            total_price=total_linha,
            size=ln.get('size'),
            color=ln.get('color'),
        ))
        total += total_linha
    pedido.total_amount = dinheiro(total)
    db.add(pedido)
    db.flush()
    return pedido


def atualizar_status(db: Session, pedido_id: int, novo_status) -> Pedido:
    """Change an order's status.

    Cancelling puts the items back in stock; a cancelled order is final.
    """
    status = map_incoming_status(novo_status)
    if status is None:
        raise ValidationError(f"Status inválido: {novo_status!r}")
    with atomic(db):
        pedido = db.query(Pedido).filter(Pedido.id == pedido_id).with_for_update().first()
        if pedido is None:
            raise NotFoundError("Pedido não encontrado")
        if pedido.status == 'cancelled':
            raise ConflictError("Pedido cancelado não pode ser alterado")
        if status == 'cancelled':
            for it in pedido.items:
                if it.product_id is not None:
                    estoque.devolver_estoque(db, it.product_id, it.quantity)
        anterior = pedido.status
        pedido.status = status
        db.add(pedido)
    db.refresh(pedido)
    logger.info("pedido %s status %s -> %s", pedido.order_number, anterior, status)
    return pedido
