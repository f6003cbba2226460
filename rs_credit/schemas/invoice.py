from pydantic import BaseModel, Field, field_validator
from datetime import date
from typing import Optional

class Invoice(BaseModel):
    id: str
    number: str = ""
    supplier: str = ""
    amount: float = 0.0
    invoice_date: Optional[date] = None
    eligible: bool = False
    eligibility_reason: str = "Da verificare manualmente"
    project_id: Optional[str] = None

class InvoiceCreate(BaseModel):
    number: str = ""
    supplier: str = ""
    amount: float = Field(default=0.0, ge=0)
    invoice_date: Optional[date] = None
    eligible: bool = False
    eligibility_reason: str = "Da verificare manualmente"

    @field_validator("supplier", "number")
    @classmethod
    def strip_text(cls, v: str) -> str:
        return v.strip()
