from sqlalchemy import Column, Integer, String, Text, Date, Boolean, DateTime, JSON
from sqlalchemy.sql import func
from rs_credit.database import Base

class ProjectRecord(Base):
    __tablename__ = "projects"

    id = Column(String, primary_key=True, index=True)
    user_id = Column(String, index=True, nullable=False)
    name = Column(String, default="")
    fiscal_year = Column(Integer)
    project_type = Column(String, default="ricerca_industriale")
    status = Column(String, default="active")
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)
    description = Column(Text, default="")
    assigned_invoice_ids = Column(JSON, default=list)

    is_active = Column(Boolean, default=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
