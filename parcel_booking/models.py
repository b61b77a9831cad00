from sqlalchemy import Column, Integer, String, Numeric, DateTime, ForeignKey, JSON, Text
from sqlalchemy.orm import relationship
from datetime import datetime
from .database import Base


class CartStatus:
    ACTIVE = "active"
    CONVERTED = "converted"


class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    price = Column(Numeric(10, 2), default=0)  # Catalogue price, overridden for parcel lines
    created_at = Column(DateTime, default=datetime.utcnow)


class Cart(Base):
    __tablename__ = "carts"

    id = Column(String, primary_key=True)  # UUID
    status = Column(String, default=CartStatus.ACTIVE)  # 'active' | 'converted'
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    lines = relationship(
        "CartLine", back_populates="cart", cascade="all, delete-orphan", order_by="CartLine.id",
    )


class CartLine(Base):
    """One cart row. line_data holds host-opaque extras such as the parcel record."""
    __tablename__ = "cart_lines"

    id = Column(Integer, primary_key=True, index=True)
    cart_id = Column(String, ForeignKey("carts.id"), nullable=False)
    line_key = Column(String, nullable=False, index=True)  # Hash of product + line_data
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    quantity = Column(Integer, default=1)
    unit_price = Column(Numeric(10, 2), default=0)
    line_data = Column(JSON, default=dict)
    created_at = Column(DateTime, default=datetime.utcnow)

    cart = relationship("Cart", back_populates="lines")
    product = relationship("Product")

    @property
    def key(self) -> str:
        return self.line_key


class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    order_number = Column(String, unique=True, nullable=False)
    cart_id = Column(String, nullable=True)  # No FK, the cart may be deleted later
    status = Column(String, default="pending")
    total = Column(Numeric(10, 2), default=0)
    created_at = Column(DateTime, default=datetime.utcnow)

    lines = relationship(
        "OrderLine", back_populates="order", cascade="all, delete-orphan", order_by="OrderLine.id",
    )


class OrderLine(Base):
    __tablename__ = "order_lines"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False)
    product_id = Column(Integer, nullable=False)
    name = Column(String, nullable=False)
    quantity = Column(Integer, default=1)
    unit_price = Column(Numeric(10, 2), default=0)
    line_total = Column(Numeric(10, 2), default=0)

    order = relationship("Order", back_populates="lines")
    meta = relationship(
        "OrderLineMeta", back_populates="order_line",
        cascade="all, delete-orphan", order_by="OrderLineMeta.position",
    )

    def add_meta_data(self, label: str, value: str) -> None:
        self.meta.append(OrderLineMeta(position=len(self.meta), label=label, value=value))


class OrderLineMeta(Base):
    """Descriptive key/value pairs written once at checkout."""
    __tablename__ = "order_line_meta"

    id = Column(Integer, primary_key=True, index=True)
    order_line_id = Column(Integer, ForeignKey("order_lines.id"), nullable=False)
    position = Column(Integer, nullable=False)
    label = Column(String, nullable=False)
    value = Column(Text, nullable=False)

    order_line = relationship("OrderLine", back_populates="meta")
