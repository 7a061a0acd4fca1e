from pydantic import BaseModel, Field
from typing import Optional, List, Literal
from datetime import date


class CarrinhoItemAdd(BaseModel):
    product_id: int
    quantity: int = Field(default=1, ge=1)
    size: Optional[str] = None
    color: Optional[str] = None


class CarrinhoQuantidade(BaseModel):
    # zero or negative removes the line
    quantity: int


class CarrinhoItemRead(BaseModel):
    id: str
    product_id: int
    name: str
    sku: str
    sale_price: float
    quantity: int
    stock: int
    size: Optional[str] = None
    color: Optional[str] = None


class CarrinhoRead(BaseModel):
    id: str
    items: List[CarrinhoItemRead] = []
    item_count: int = 0
    subtotal: float = 0.0


class CheckoutRequest(BaseModel):
    mode: Literal['sale', 'conditional'] = 'sale'
    customer_id: Optional[int] = None
    payment_method: Optional[str] = None
    payment_methods: Optional[List[str]] = None
    due_date: Optional[date] = None
