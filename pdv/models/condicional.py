from sqlalchemy import Column, Integer, String, Numeric, Date, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from pdv.db.session import Base
from pdv.core.timezone_utils import utcnow


class Condicional(Base):
    """Consignment hold: items leave stock until the customer buys or returns them."""
    __tablename__ = 'conditionals'

    id = Column(Integer, primary_key=True, index=True)
    customer_id = Column(Integer, ForeignKey('customers.id', ondelete='SET NULL'), nullable=True, index=True)
    customer_name = Column(String(255), nullable=False)
    customer_phone = Column(String(50), nullable=False, default='')
    # sum of unit_price * quantity over the items still attached
    total_value = Column(Numeric(12, 2), nullable=False, default=0)
    due_date = Column(Date, nullable=False)
    # stored: 'active' | 'sold' | 'returned' (legacy rows may hold 'overdue')
    status = Column(String(20), nullable=False, default='active', index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    items = relationship('CondicionalItem', backref='condicional', order_by='CondicionalItem.id', cascade='all, delete-orphan', lazy='selectin')
