from fastapi import APIRouter, Depends, HTTPException
import logging
from typing import List, Optional
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from pdv.db.session import get_db
from pdv.models.product import Produto as ProdutoModel
from pdv.schemas.product import ProdutoCreate, ProdutoUpdate, ProdutoRead
from pdv.services import estoque

router = APIRouter(prefix="/products", tags=["Products"])

logger = logging.getLogger(__name__)


def _sku_em_uso(db: Session, sku: str, ignorar_id: Optional[int] = None) -> bool:
    q = db.query(ProdutoModel.id).filter(ProdutoModel.sku == sku)
    if ignorar_id is not None:
        q = q.filter(ProdutoModel.id != ignorar_id)
    return q.first() is not None


@router.post("", response_model=ProdutoRead, status_code=201)
@router.post("/", response_model=ProdutoRead, status_code=201)
def create_product(payload: ProdutoCreate, db: Session = Depends(get_db)):
    if _sku_em_uso(db, payload.sku):
        raise HTTPException(status_code=409, detail="SKU já cadastrado")
    p = ProdutoModel(**payload.model_dump())
    try:
        db.add(p)
        db.commit()
        db.refresh(p)
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="SKU já cadastrado")
    logger.info("created product id=%s sku=%r stock=%s", p.id, p.sku, p.stock)
    return p


@router.get("", response_model=List[ProdutoRead])
@router.get("/", response_model=List[ProdutoRead])
def list_products(
    status: Optional[str] = None,
    category: Optional[str] = None,
    featured: Optional[bool] = None,
    q: Optional[str] = None,
    limit: int = 200,
    db: Session = Depends(get_db),
):
    query = db.query(ProdutoModel)
    if status:
        query = query.filter(ProdutoModel.status == status)
    if category:
        query = query.filter(ProdutoModel.category == category)
    if featured is not None:
        query = query.filter(ProdutoModel.featured == featured)
    if q:
        termo = f"%{q.strip()}%"
        query = query.filter(or_(ProdutoModel.name.ilike(termo), ProdutoModel.sku.ilike(termo)))
    return query.order_by(ProdutoModel.name).limit(limit).all()


@router.get("/low-stock", response_model=List[ProdutoRead])
def list_low_stock(include_out_of_stock: bool = False, db: Session = Depends(get_db)):
    """Active products at or below their min_stock (optionally the empty ones too)."""
    rows = db.query(ProdutoModel).filter(ProdutoModel.status == 'active').order_by(ProdutoModel.stock, ProdutoModel.name).all()
    return [
        p for p in rows
        if estoque.estoque_baixo(p) or (include_out_of_stock and estoque.sem_estoque(p))
    ]


@router.get("/{product_id}", response_model=ProdutoRead)
def get_product(product_id: int, db: Session = Depends(get_db)):
    p = db.query(ProdutoModel).filter(ProdutoModel.id == product_id).first()
    if not p:
        raise HTTPException(status_code=404, detail="Produto não encontrado")
    return p


@router.put("/{product_id}", response_model=ProdutoRead)
@router.patch("/{product_id}", response_model=ProdutoRead)
def update_product(product_id: int, payload: ProdutoUpdate, db: Session = Depends(get_db)):
    p = db.query(ProdutoModel).filter(ProdutoModel.id == product_id).first()
    if not p:
        raise HTTPException(status_code=404, detail="Produto não encontrado")
    changes = payload.model_dump(exclude_unset=True)
    if changes.get('sku') and _sku_em_uso(db, changes['sku'], ignorar_id=product_id):
        raise HTTPException(status_code=409, detail="SKU já cadastrado")
    for campo, valor in changes.items():
        if valor is None and campo in ('name', 'sku', 'sale_price', 'stock', 'status', 'featured', 'colors', 'sizes'):
            # required columns: an explicit null means "leave as is"
            continue
        setattr(p, campo, valor)
    try:
        db.add(p)
        db.commit()
        db.refresh(p)
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="SKU já cadastrado")
    logger.info("updated product id=%s fields=%s", p.id, sorted(changes))
    return p


@router.delete("/{product_id}")
def delete_product(product_id: int, db: Session = Depends(get_db)):
    p = db.query(ProdutoModel).filter(ProdutoModel.id == product_id).first()
    if not p:
        raise HTTPException(status_code=404, detail="Produto não encontrado")
    db.delete(p)
    db.commit()
    logger.info("deleted product id=%s", product_id)
    return {"detail": "Produto removido com sucesso"}
