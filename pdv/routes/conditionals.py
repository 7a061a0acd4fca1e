from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import List, Optional

from pdv.core.timezone_utils import local_today
from pdv.db.session import get_db
from pdv.models.condicional import Condicional as CondicionalModel
from pdv.schemas.condicional import (
    CondicionalCreate,
    CondicionalRead,
    ProcessarCondicional,
    ResultadoProcessamento,
)
from pdv.services import checkout, condicionais
from pdv.utils.pubsub import notify_invalidation

router = APIRouter(prefix="/conditionals", tags=["Conditionals"])


def _to_read(cond, hoje) -> CondicionalRead:
    out = CondicionalRead.model_validate(cond)
    out.effective_status = condicionais.status_efetivo(cond, hoje)
    return out


@router.post("", response_model=CondicionalRead, status_code=201)
@router.post("/", response_model=CondicionalRead, status_code=201)
async def create_conditional(payload: CondicionalCreate, db: Session = Depends(get_db)):
    cond = checkout.abrir_condicional(db, payload.items, customer_id=payload.customer_id, due_date=payload.due_date)
    notify_invalidation("conditionals", "products")
    return _to_read(cond, local_today())


@router.get("", response_model=List[CondicionalRead])
@router.get("/", response_model=List[CondicionalRead])
def list_conditionals(status: Optional[str] = None, limit: int = 200, db: Session = Depends(get_db)):
    """Newest first. `status` filters on the effective status (overdue is derived)."""
    hoje = local_today()
    query = db.query(CondicionalModel)
    if status:
        query = condicionais.filtrar_status_efetivo(query, status, hoje)
    rows = (
        query.order_by(CondicionalModel.created_at.desc(), CondicionalModel.id.desc())
        .limit(limit)
        .all()
    )
    return [_to_read(c, hoje) for c in rows]


@router.get("/{conditional_id}", response_model=CondicionalRead)
def get_conditional(conditional_id: int, db: Session = Depends(get_db)):
    cond = db.query(CondicionalModel).filter(CondicionalModel.id == conditional_id).first()
    if not cond:
        raise HTTPException(status_code=404, detail="Condicional não encontrada")
    return _to_read(cond, local_today())


@router.post("/{conditional_id}/process", response_model=ResultadoProcessamento)
async def process_conditional(conditional_id: int, payload: ProcessarCondicional, db: Session = Depends(get_db)):
    resultado = condicionais.processar_condicional(
        db,
        conditional_id,
        payload.action,
        payload.item_ids,
        forma_pagamento=payload.payment_method,
    )
    notify_invalidation("orders", "conditionals", "products")
    return resultado
