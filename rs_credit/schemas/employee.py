from pydantic import BaseModel, ConfigDict, Field
from typing import Dict, Optional

class MonthlyCostRecord(BaseModel):
    hours: float = 0.0
    hourly_cost: float = 0.0
    monthly_cost: float = 0.0
    gross_pay: Optional[float] = None
    cost_estimated: bool = False
    source_file: Optional[str] = None

class Employee(BaseModel):
    """In-memory employee snapshot. Aggregates are owned by EmployeeCostHistory."""
    id: str
    fiscal_code: str = ""
    name: str
    role: str = "Dipendente"
    monthly_history: Dict[str, MonthlyCostRecord] = Field(default_factory=dict)

    # Manual mode, used when no monthly history exists
    annual_hours: float = 0.0
    fallback_hourly_cost: float = 0.0

    total_annual_hours: float = 0.0
    average_monthly_hours: float = 0.0
    average_hourly_cost: float = 0.0
    total_annual_cost: float = 0.0
    months_count: int = 0
    first_month: Optional[str] = None
    last_month: Optional[str] = None
    cost_is_estimated: bool = False

    @property
    def has_history(self) -> bool:
        return len(self.monthly_history) > 0

class EmployeeCreate(BaseModel):
    name: str = Field(min_length=1)
    fiscal_code: str = ""
    role: str = "Dipendente"
    monthly_hours: Optional[float] = None
    hourly_cost: Optional[float] = None

class MonthUpsertRequest(BaseModel):
    month: str
    hours_in_month: Optional[float] = None
    gross_monthly_pay: Optional[float] = None
    employer_cost_override: Optional[float] = None
    # Direct edit of a month: used when no pay figures are given
    hourly_cost: Optional[float] = None
    monthly_cost: Optional[float] = None

class ManualCostRequest(BaseModel):
    monthly_hours: float = 160.0
    hourly_cost: float = 0.0

class RalCostRequest(BaseModel):
    ral: float = Field(gt=0)
    sector: Optional[str] = None
    inps: Optional[float] = None
    inail: Optional[float] = None
    tfr: Optional[float] = None
    other: Optional[float] = None

class EmployeeResponse(Employee):
    model_config = ConfigDict(from_attributes=True)

    allocation_total: int = 0
    allocation_status: str = "none"
    allocated_hours: float = 0.0
