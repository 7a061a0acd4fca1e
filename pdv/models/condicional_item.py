from sqlalchemy import Column, Integer, ForeignKey, String, Numeric
from pdv.db.session import Base


class CondicionalItem(Base):
    __tablename__ = 'conditional_items'

    id = Column(Integer, primary_key=True, index=True)
    conditional_id = Column(Integer, ForeignKey('conditionals.id', ondelete='CASCADE'), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey('products.id', ondelete='SET NULL'), nullable=True)
    product_name = Column(String(255), nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
    unit_price = Column(Numeric(12, 2), nullable=False, default=0)
    size = Column(String(20), nullable=True)
    color = Column(String(50), nullable=True)
