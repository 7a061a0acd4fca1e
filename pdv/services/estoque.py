"""Stock ledger.

Every change is a single UPDATE evaluated by the database, so two requests
touching the same product cannot overwrite each other's result. Callers run
these inside `pdv.db.session.atomic` so a later failure undoes the movement.
"""
import logging

from sqlalchemy.orm import Session

from pdv.core.config import settings
from pdv.core.errors import ConflictError, NotFoundError
from pdv.models.product import Produto

logger = logging.getLogger(__name__)


def baixar_estoque(db: Session, produto_id: int, quantidade: int) -> None:
    """Decrement stock if stock >= quantidade, else fail with ConflictError."""
    rows = (
        db.query(Produto)
        .filter(Produto.id == produto_id, Produto.stock >= quantidade)
        .update({Produto.stock: Produto.stock - quantidade}, synchronize_session=False)
    )
    if rows == 0:
        atual = db.query(Produto.name, Produto.stock).filter(Produto.id == produto_id).first()
        if atual is None:
            raise NotFoundError(f"Produto {produto_id} não encontrado")
        raise ConflictError(
            f"Estoque insuficiente para {atual.name}: disponível {atual.stock}, solicitado {quantidade}"
        )
    logger.debug("estoque produto=%s -%s", produto_id, quantidade)


def devolver_estoque(db: Session, produto_id: int, quantidade: int) -> None:
    rows = (
        db.query(Produto)
        .filter(Produto.id == produto_id)
        .update({Produto.stock: Produto.stock + quantidade}, synchronize_session=False)
    )
    if rows == 0:
        raise NotFoundError(f"Produto {produto_id} não encontrado")
    logger.debug("estoque produto=%s +%s", produto_id, quantidade)


def limite_estoque_baixo(produto) -> int:
    if produto.min_stock is None:
        return settings.LOW_STOCK_DEFAULT
    return produto.min_stock


def sem_estoque(produto) -> bool:
    return (produto.stock or 0) <= 0


def estoque_baixo(produto) -> bool:
    """Low stock: 0 < stock <= min_stock (out of stock is reported apart)."""
    stock = produto.stock or 0
    return 0 < stock <= limite_estoque_baixo(produto)
