from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import List, Optional
import logging

from pdv.db.session import get_db
from pdv.models.pedido import Pedido as PedidoModel
from pdv.schemas.pedido import PedidoRead, PedidoStatusUpdate, VendaCreate
from pdv.services import checkout, pedidos
from pdv.utils.pubsub import notify_invalidation

router = APIRouter(prefix="/orders", tags=["Orders"])

logger = logging.getLogger(__name__)


@router.post("", response_model=PedidoRead, status_code=201)
@router.post("/", response_model=PedidoRead, status_code=201)
async def create_order(payload: VendaCreate, db: Session = Depends(get_db)):
    """Direct PDV sale (without a server-side cart)."""
    pedido = checkout.finalizar_venda(
        db,
        payload.items,
        customer_id=payload.customer_id,
        payment_method=payload.payment_method,
        payment_methods=payload.payment_methods,
    )
    notify_invalidation("orders", "products")
    return pedido


@router.get("", response_model=List[PedidoRead])
@router.get("/", response_model=List[PedidoRead])
def list_orders(status: Optional[str] = None, limit: int = 200, db: Session = Depends(get_db)):
    q = db.query(PedidoModel)
    if status:
        q = q.filter(PedidoModel.status == status)
    return q.order_by(PedidoModel.created_at.desc(), PedidoModel.id.desc()).limit(limit).all()


@router.get("/{order_id}", response_model=PedidoRead)
def get_order(order_id: int, db: Session = Depends(get_db)):
    p = db.query(PedidoModel).filter(PedidoModel.id == order_id).first()
    if not p:
        raise HTTPException(status_code=404, detail="Pedido não encontrado")
    return p


@router.patch("/{order_id}/status", response_model=PedidoRead)
async def update_order_status(order_id: int, payload: PedidoStatusUpdate, db: Session = Depends(get_db)):
    pedido = pedidos.atualizar_status(db, order_id, payload.status)
    notify_invalidation("orders", "products")
    return pedido
