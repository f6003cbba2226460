from pydantic import BaseModel, Field, field_validator
from typing import Any, List, Optional
import math
import re

from rs_credit.schemas.employee import Employee, MonthlyCostRecord


# Number with an optional currency prefix and an optional unit suffix:
# "€ 1.234,56", "35.000,00 EUR", "160 h", "168 ore"
_AMOUNT = re.compile(r"^(?:€|eur|euro)?\s*([-+]?\d[\d.,]*)\s*(?:€|[a-z]+\.?)?$", re.IGNORECASE)


def _coerce_number(value: Any) -> Optional[float]:
    """Turn AI-provided numbers ("1.234,56", "160 h", 35000) into floats."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        match = _AMOUNT.match(str(value).strip())
        if not match:
            return None
        text = match.group(1)
        # Italian formatting: "." thousands, "," decimals
        if "," in text:
            text = text.replace(".", "").replace(",", ".")
        elif re.fullmatch(r"\d{1,3}(\.\d{3})+", text):
            text = text.replace(".", "")
        try:
            number = float(text)
        except ValueError:
            return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


class PayslipExtraction(BaseModel):
    """Fields returned by the document-extraction service. Every field may be null."""
    nome_completo: Optional[str] = None
    codice_fiscale: Optional[str] = None
    qualifica: Optional[str] = None
    mese: Optional[str] = None
    ore_mensili: Optional[float] = None
    retribuzione_lorda: Optional[float] = None
    costo_azienda: Optional[float] = None

    @field_validator("ore_mensili", "retribuzione_lorda", "costo_azienda", mode="before")
    @classmethod
    def parse_number(cls, v: Any) -> Optional[float]:
        return _coerce_number(v)

    @field_validator("nome_completo", "codice_fiscale", "qualifica", "mese", mode="before")
    @classmethod
    def parse_text(cls, v: Any) -> Optional[str]:
        if v is None:
            return None
        text = str(v).strip()
        return text or None


class CostInput(BaseModel):
    employee_id: Optional[str] = None
    fiscal_code: str = ""
    month: str
    hours_in_month: Optional[float] = None
    gross_monthly_pay: Optional[float] = None
    employer_cost_override: Optional[float] = None


class NormalizedPayslip(BaseModel):
    name: str
    fiscal_code: str = ""
    role: str = "Dipendente"
    month: str
    record: MonthlyCostRecord
    file_name: str
    manual_mode: bool = False


class ExtractionFailure(BaseModel):
    file: str
    error: str


class PayslipFile(BaseModel):
    file_name: str
    content: bytes
    mime_type: str

class ExtractionOutcome(BaseModel):
    """Extraction results before they are merged into employee histories."""
    payslips: List[NormalizedPayslip] = Field(default_factory=list)
    manual_templates: List[NormalizedPayslip] = Field(default_factory=list)
    failures: List[ExtractionFailure] = Field(default_factory=list)

class PayslipBatchResult(BaseModel):
    employees: List[Employee] = Field(default_factory=list)
    manual_templates: List[NormalizedPayslip] = Field(default_factory=list)
    failures: List[ExtractionFailure] = Field(default_factory=list)
