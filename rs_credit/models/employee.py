from sqlalchemy import Column, String, Float, Boolean, DateTime, JSON
from sqlalchemy.sql import func
from rs_credit.database import Base

class EmployeeRecord(Base):
    __tablename__ = "employees"

    id = Column(String, primary_key=True, index=True)
    user_id = Column(String, index=True, nullable=False)
    fiscal_code = Column(String, index=True, default="")
    name = Column(String, nullable=False)
    role = Column(String, default="Dipendente")

    # {"MM/YYYY": {hours, hourly_cost, monthly_cost, gross_pay, cost_estimated, source_file}}
    monthly_history = Column(JSON, default=dict)

    # Manual mode
    annual_hours = Column(Float, default=0.0)
    fallback_hourly_cost = Column(Float, default=0.0)

    # Denormalised aggregates, kept for reporting queries
    total_annual_hours = Column(Float, default=0.0)
    average_hourly_cost = Column(Float, default=0.0)
    total_annual_cost = Column(Float, default=0.0)
    first_month = Column(String, nullable=True)
    last_month = Column(String, nullable=True)
    cost_is_estimated = Column(Boolean, default=False)

    is_active = Column(Boolean, default=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
