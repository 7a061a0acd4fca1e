from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List
from datetime import datetime


class ItemVenda(BaseModel):
    """A line picked at the PDV; price is always taken from the product."""
    product_id: int
    quantity: int = Field(default=1, ge=1)
    size: Optional[str] = None
    color: Optional[str] = None


class VendaCreate(BaseModel):
    customer_id: Optional[int] = None
    items: List[ItemVenda] = []
    # either a single method or several (split payment)
    payment_method: Optional[str] = None
    payment_methods: Optional[List[str]] = None


class PedidoItemRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    product_id: Optional[int] = None
    product_name: str
    quantity: int
    unit_price: float
    total_price: float
    size: Optional[str] = None
    color: Optional[str] = None


class PedidoRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    order_number: str
    customer_id: Optional[int] = None
    customer_name: str
    customer_phone: Optional[str] = None
    total_amount: float
    payment_method: Optional[str] = None
    status: str
    items: List[PedidoItemRead] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class PedidoStatusUpdate(BaseModel):
    status: str
