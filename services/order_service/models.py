from sqlalchemy import Column, DateTime, String, JSON, func
from shared.config.database import Base

class OrderRecord(Base):
    __tablename__ = "orders"

    id = Column(String(64), primary_key=True) # primary key makes duplicate inserts fail atomically
    customer_email = Column(String, nullable=False)
    line_items = Column(JSON, nullable=False) # [{description, unit_price_cents, quantity}]
    status = Column(String(16), nullable=False, default="pending", index=True) # pending, charged, fulfilled
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    # no total column: the total is always recomputed from line_items
