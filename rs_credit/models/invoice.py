from sqlalchemy import Column, String, Float, Date, Boolean, Text, DateTime
from sqlalchemy.sql import func
from rs_credit.database import Base

class InvoiceRecord(Base):
    __tablename__ = "invoices"

    id = Column(String, primary_key=True, index=True)
    user_id = Column(String, index=True, nullable=False)
    number = Column(String, default="")
    supplier = Column(String, default="")
    amount = Column(Float, default=0.0)
    invoice_date = Column(Date, nullable=True)
    eligible = Column(Boolean, default=False)
    eligibility_reason = Column(Text, default="Da verificare manualmente")
    project_id = Column(String, nullable=True, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
