from pydantic import BaseModel
from typing import Optional, List
from datetime import date, datetime


class PontoVendas(BaseModel):
    label: str
    total: float


class SerieVendas(BaseModel):
    period: str
    start: datetime
    end: datetime
    granularity: str
    points: List[PontoVendas] = []
    total: float = 0.0
    count: int = 0


class MetodoPagamento(BaseModel):
    method: str
    count: int
    total: float


class PontoCondicionais(BaseModel):
    label: str
    active: int = 0
    overdue: int = 0


class SerieCondicionais(BaseModel):
    granularity: str
    points: List[PontoCondicionais] = []


class CondicionalRecente(BaseModel):
    id: int
    customer_name: str
    customer_phone: Optional[str] = None
    items: int
    value: float
    due_date: date
    status: str


class ResumoDashboard(BaseModel):
    period: str
    revenue: float = 0.0
    orders: int = 0
    average_ticket: float = 0.0
    open_conditionals: int = 0
    open_conditionals_value: float = 0.0
    overdue_conditionals: int = 0
    low_stock: int = 0
    out_of_stock: int = 0
    recent_conditionals: List[CondicionalRecente] = []


class EstoqueCategoria(BaseModel):
    category: str
    stock: int
    low_stock: int
