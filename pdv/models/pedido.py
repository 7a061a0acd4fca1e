from sqlalchemy import Column, Integer, String, Numeric, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from pdv.db.session import Base
from pdv.core.timezone_utils import utcnow


class Pedido(Base):
    __tablename__ = 'orders'

    id = Column(Integer, primary_key=True, index=True)
    # VEND-<millis> for PDV sales, PDV-<millis> for finished conditionals
    order_number = Column(String(50), nullable=False, index=True)
    customer_id = Column(Integer, ForeignKey('customers.id', ondelete='SET NULL'), nullable=True, index=True)
    # customer data is copied at creation time so the order survives edits
    customer_name = Column(String(255), nullable=False)
    customer_phone = Column(String(50), nullable=True)
    total_amount = Column(Numeric(12, 2), nullable=False, default=0)
    payment_method = Column(String(255), nullable=True)
    # 'pending' | 'confirmed' | 'shipped' | 'delivered' | 'cancelled'
    status = Column(String(20), nullable=False, default='pending', index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    items = relationship('PedidoItem', backref='pedido', order_by='PedidoItem.id', cascade='all, delete-orphan', lazy='selectin')
