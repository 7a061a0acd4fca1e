from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List, Literal
from datetime import datetime

ProdutoStatus = Literal['active', 'inactive']


class ProdutoCreate(BaseModel):
    name: str = Field(min_length=1)
    sku: str = Field(min_length=1)
    description: Optional[str] = None
    sale_price: float = Field(ge=0)
    cost_price: Optional[float] = Field(default=None, ge=0)
    stock: int = Field(default=0, ge=0)
    min_stock: Optional[int] = Field(default=None, ge=0)
    category: Optional[str] = None
    brand: Optional[str] = None
    colors: List[str] = []
    sizes: List[str] = []
    status: ProdutoStatus = 'active'
    featured: bool = False


class ProdutoUpdate(BaseModel):
    # partial update: only fields present in the payload are applied
    name: Optional[str] = Field(default=None, min_length=1)
    sku: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    sale_price: Optional[float] = Field(default=None, ge=0)
    cost_price: Optional[float] = Field(default=None, ge=0)
    # manual inventory count from the catalog screen
    stock: Optional[int] = Field(default=None, ge=0)
    min_stock: Optional[int] = Field(default=None, ge=0)
    category: Optional[str] = None
    brand: Optional[str] = None
    colors: Optional[List[str]] = None
    sizes: Optional[List[str]] = None
    status: Optional[ProdutoStatus] = None
    featured: Optional[bool] = None


class ProdutoRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    sku: str
    description: Optional[str] = None
    sale_price: float
    cost_price: Optional[float] = None
    stock: int
    min_stock: Optional[int] = None
    category: Optional[str] = None
    brand: Optional[str] = None
    colors: List[str] = []
    sizes: List[str] = []
    status: str
    featured: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
