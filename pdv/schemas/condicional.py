from pydantic import BaseModel, ConfigDict
from typing import Optional, List
from datetime import date, datetime

from pdv.schemas.pedido import ItemVenda


class CondicionalCreate(BaseModel):
    customer_id: Optional[int] = None
    items: List[ItemVenda] = []
    due_date: Optional[date] = None


class CondicionalItemRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    product_id: Optional[int] = None
    product_name: str
    quantity: int
    unit_price: float
    size: Optional[str] = None
    color: Optional[str] = None


class CondicionalRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    customer_id: Optional[int] = None
    customer_name: str
    customer_phone: Optional[str] = None
    total_value: float
    due_date: date
    status: str
    # status as seen by the user: 'overdue' is derived from due_date
    effective_status: Optional[str] = None
    items: List[CondicionalItemRead] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ProcessarCondicional(BaseModel):
    action: str
    item_ids: List[int] = []
    payment_method: Optional[str] = None


class ResultadoProcessamento(BaseModel):
    conditional_id: int
    action: str
    status: str
    sold: int = 0
    returned: int = 0
    remaining: int = 0
    total_value: float = 0.0
    order_id: Optional[int] = None
    order_number: Optional[str] = None
    message: str = ''
