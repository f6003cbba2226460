from sqlalchemy import Column, Integer, String, DateTime, UniqueConstraint
from sqlalchemy.sql import func
from rs_credit.database import Base

class AllocationRecord(Base):
    """A row exists only for non-zero percentages."""
    __tablename__ = "allocations"
    __table_args__ = (
        UniqueConstraint("user_id", "employee_id", "project_id", name="uq_allocation_pair"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, index=True, nullable=False)
    employee_id = Column(String, index=True, nullable=False)
    project_id = Column(String, index=True, nullable=False)
    percentage = Column(Integer, nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
