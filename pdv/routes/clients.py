from fastapi import APIRouter, Depends, HTTPException
from starlette.responses import StreamingResponse
from sqlalchemy import or_
from sqlalchemy.orm import Session
from typing import List, Optional
import csv
import io
import logging

from pdv.core.timezone_utils import local_today, to_local
from pdv.db.session import get_db
from pdv.models.client import Cliente as ClienteModel
from pdv.models.pedido import Pedido as PedidoModel
from pdv.schemas.client import ClienteCreate, ClienteRead
from pdv.schemas.pedido import PedidoRead

router = APIRouter(prefix="/clients", tags=["Clients"])

logger = logging.getLogger(__name__)


@router.post("", response_model=ClienteRead, status_code=201)
@router.post("/", response_model=ClienteRead, status_code=201)
def create_client(payload: ClienteCreate, db: Session = Depends(get_db)):
    client = ClienteModel(**payload.model_dump())
    db.add(client)
    db.commit()
    db.refresh(client)
    logger.info("created client id=%s name=%r", client.id, client.name)
    return client


@router.get("", response_model=List[ClienteRead])
@router.get("/", response_model=List[ClienteRead])
def list_clients(q: Optional[str] = None, limit: int = 200, db: Session = Depends(get_db)):
    """Newest first; `q` matches name, phone or email."""
    query = db.query(ClienteModel)
    if q:
        termo = f"%{q.strip()}%"
        query = query.filter(or_(
            ClienteModel.name.ilike(termo),
            ClienteModel.phone.ilike(termo),
            ClienteModel.email.ilike(termo),
        ))
    return query.order_by(ClienteModel.created_at.desc(), ClienteModel.id.desc()).limit(limit).all()


EXPORT_HEADERS = ['Nome', 'Telefone', 'Email', 'CPF', 'Endereço', 'Cidade', 'Estado', 'CEP', 'Data de Cadastro']


def _csv_clientes(rows):
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(EXPORT_HEADERS)
    yield buf.getvalue()
    quoted = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
    for c in rows:
        buf.seek(0)
        buf.truncate()
        cadastro = to_local(c.created_at)
        quoted.writerow([
            c.name, c.phone, c.email or '', c.cpf or '', c.address or '',
            c.city or '', c.state or '', c.zip_code or '',
            cadastro.strftime('%d/%m/%Y') if cadastro else '',
        ])
        yield buf.getvalue()


@router.get("/export")
def export_clients(db: Session = Depends(get_db)):
    """CSV download of every customer, oldest first."""
    rows = db.query(ClienteModel).order_by(ClienteModel.created_at, ClienteModel.id).all()
    if not rows:
        raise HTTPException(status_code=404, detail="Nenhum cliente para exportar")
    logger.info("exporting %s clients", len(rows))
    filename = f"clientes_{local_today().isoformat()}.csv"
    return StreamingResponse(
        _csv_clientes(rows),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/{client_id}", response_model=ClienteRead)
def get_client(client_id: int, db: Session = Depends(get_db)):
    client = db.query(ClienteModel).filter(ClienteModel.id == client_id).first()
    if not client:
        raise HTTPException(status_code=404, detail="Cliente não encontrado")
    return client


@router.get("/{client_id}/orders", response_model=List[PedidoRead])
def client_orders(client_id: int, db: Session = Depends(get_db)):
    client = db.query(ClienteModel).filter(ClienteModel.id == client_id).first()
    if not client:
        raise HTTPException(status_code=404, detail="Cliente não encontrado")
    return (
        db.query(PedidoModel)
        .filter(PedidoModel.customer_id == client_id)
        .order_by(PedidoModel.created_at.desc(), PedidoModel.id.desc())
        .all()
    )


@router.put("/{client_id}", response_model=ClienteRead)
def update_client(client_id: int, payload: ClienteCreate, db: Session = Depends(get_db)):
    client = db.query(ClienteModel).filter(ClienteModel.id == client_id).first()
    if not client:
        raise HTTPException(status_code=404, detail="Cliente não encontrado")
    for campo, valor in payload.model_dump().items():
        setattr(client, campo, valor)
    db.add(client)
    db.commit()
    db.refresh(client)
    logger.info("updated client id=%s", client.id)
    return client


@router.delete("/{client_id}")
def delete_client(client_id: int, db: Session = Depends(get_db)):
    client = db.query(ClienteModel).filter(ClienteModel.id == client_id).first()
    if not client:
        raise HTTPException(status_code=404, detail="Cliente não encontrado")
    db.delete(client)
    db.commit()
    logger.info("deleted client id=%s", client_id)
    return {"detail": "Cliente removido com sucesso"}
