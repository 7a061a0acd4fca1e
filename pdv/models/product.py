from sqlalchemy import Column, Integer, String, Boolean, Text, DateTime, Numeric, JSON
from pdv.db.session import Base
from pdv.core.timezone_utils import utcnow


class Produto(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    sku = Column(String(100), nullable=False, unique=True, index=True)
    description = Column(Text, nullable=True)
    sale_price = Column(Numeric(12, 2), nullable=False, default=0)
    cost_price = Column(Numeric(12, 2), nullable=True)
    # stock is only ever changed through single UPDATE statements guarded by
    # `stock >= quantity`, see pdv.services.estoque
    stock = Column(Integer, nullable=False, default=0)
    # low-stock threshold; NULL falls back to settings.LOW_STOCK_DEFAULT
    min_stock = Column(Integer, nullable=True)
    category = Column(String(100), nullable=True, index=True)
    brand = Column(String(100), nullable=True)
    colors = Column(JSON, nullable=False, default=list)
    sizes = Column(JSON, nullable=False, default=list)
    status = Column(String(20), nullable=False, default='active')  # 'active' | 'inactive'
    featured = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)
