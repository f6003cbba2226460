"""
Cost Normalizer

Turns a single payroll observation (from a payslip extraction or a manual
edit) into a MonthlyCostRecord.

Rules:
- An explicit employer cost ("costo azienda") is used as-is.
- Otherwise the gross monthly pay is annualised over 13 instalments, the
  statutory on-costs are applied to the resulting RAL, and the total is
  spread back over 13 instalments. Such records are flagged as estimated.
- Malformed numbers never leave this module: NaN, infinities, negatives and
  non-numeric values are sanitised to 0 so aggregation stays total.
"""

import logging
import math
from typing import Any, Dict, Optional

from pydantic import BaseModel

from rs_credit.core.config import settings
from rs_credit.schemas.employee import MonthlyCostRecord

logger = logging.getLogger(__name__)

DEFAULT_MONTHLY_HOURS: float = settings.costs.default_monthly_hours
MONTHLY_INSTALMENTS: int = settings.costs.monthly_instalments
STANDARD_ANNUAL_HOURS: float = settings.costs.standard_annual_hours

# Sector-specific statutory rates; anything not listed keeps the default
SECTOR_RATE_OVERRIDES: Dict[str, Dict[str, float]] = {
    "edilizia": {"inail": 0.04},
}

# All-in multipliers for a quick estimate when only the RAL is known
SECTOR_MULTIPLIERS: Dict[str, float] = {
    "commercio": 1.38,
    "industria": 1.42,
    "edilizia": 1.45,
    "servizi": 1.40,
    "IT": 1.41,
    "consulenza": 1.39,
    "default": 1.42,
}


class CostRates(BaseModel):
    inps: float = settings.costs.inps_rate
    inail: float = settings.costs.inail_rate
    tfr: float = settings.costs.tfr_rate
    other: float = settings.costs.other_rate

    @property
    def total(self) -> float:
        return self.inps + self.inail + self.tfr + self.other


class EmployerCostBreakdown(BaseModel):
    ral: float
    inps: float
    inail: float
    tfr: float
    other: float
    total_cost: float
    multiplier: float
    monthly_cost: float
    hourly_cost: float
    percentages: Dict[str, str]


class CostObservation(BaseModel):
    """Raw observation; values are untrusted until normalised."""
    hours_in_month: Any = None
    gross_monthly_pay: Any = None
    employer_cost_override: Any = None
    source_file: Optional[str] = None


class NormalizedCost(BaseModel):
    record: MonthlyCostRecord
    needs_manual_completion: bool = False


def sanitize_amount(value: Any) -> float:
    """Return a finite, non-negative float; anything else becomes 0."""
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(number) or math.isinf(number) or number < 0:
        return 0.0
    return number


def _sanitize_hours(value: Any) -> float:
    # Missing or zero hours mean "not stated": fall back to a standard month
    if value is None or value == 0:
        return DEFAULT_MONTHLY_HOURS
    return sanitize_amount(value)


def rates_for_sector(sector: Optional[str] = None, **custom: Optional[float]) -> CostRates:
    """
    Build the rate set for a sector, then apply explicit customisations.

    Args:
        sector: Sector key, e.g. "edilizia". Unknown sectors use the defaults.
        **custom: inps / inail / tfr / other as fractions (0.3309, not 33.09).
    """
    values = CostRates().model_dump()
    values.update(SECTOR_RATE_OVERRIDES.get((sector or "").lower(), {}))
    for key, value in custom.items():
        if key not in values:
            raise ValueError(f"Unknown cost rate: {key}")
        if value is not None:
            values[key] = sanitize_amount(value)
    return CostRates(**values)


def calculate_from_ral(ral: float, rates: Optional[CostRates] = None) -> EmployerCostBreakdown:
    """
    Compute the total employer cost from an annual gross salary (RAL).

    total = RAL * (1 + inps + inail + tfr + other)
    """
    rates = rates or CostRates()
    ral = sanitize_amount(ral)

    inps = ral * rates.inps
    inail = ral * rates.inail
    tfr = ral * rates.tfr
    other = ral * rates.other
    total = ral + inps + inail + tfr + other

    return EmployerCostBreakdown(
        ral=ral,
        inps=inps,
        inail=inail,
        tfr=tfr,
        other=other,
        total_cost=total,
        multiplier=1 + rates.total,
        monthly_cost=round(total / MONTHLY_INSTALMENTS, 2),
        hourly_cost=round(total / STANDARD_ANNUAL_HOURS, 2),
        percentages={
            "inps": f"{rates.inps * 100:.2f}%",
            "inail": f"{rates.inail * 100:.2f}%",
            "tfr": f"{rates.tfr * 100:.2f}%",
            "other": f"{rates.other * 100:.2f}%",
            "total": f"{rates.total * 100:.2f}%",
        },
    )


def sector_multiplier(sector: Optional[str]) -> float:
    return SECTOR_MULTIPLIERS.get(sector or "default", SECTOR_MULTIPLIERS["default"])


def quick_employer_cost(ral: float, multiplier: float = SECTOR_MULTIPLIERS["default"]) -> float:
    return sanitize_amount(ral) * multiplier


def normalize_cost(observation: CostObservation, rates: Optional[CostRates] = None) -> NormalizedCost:
    """
    Normalise one payroll observation. Never raises.

    Returns:
        NormalizedCost with the record and a flag telling the caller the
        record still needs manual cost completion.
    """
    hours = _sanitize_hours(observation.hours_in_month)
    override = sanitize_amount(observation.employer_cost_override)
    gross = sanitize_amount(observation.gross_monthly_pay)

    if override > 0:
        monthly_cost = override
        estimated = False
    elif gross > 0:
        annual = calculate_from_ral(gross * MONTHLY_INSTALMENTS, rates)
        monthly_cost = annual.total_cost / MONTHLY_INSTALMENTS
        estimated = True
    else:
        logger.info(
            "No employer cost or gross pay available, record needs manual completion",
            extra={"source_file": observation.source_file},
        )
        return NormalizedCost(
            record=MonthlyCostRecord(
                hours=hours,
                hourly_cost=0.0,
                monthly_cost=0.0,
                gross_pay=None,
                cost_estimated=False,
                source_file=observation.source_file,
            ),
            needs_manual_completion=True,
        )

    hourly_cost = monthly_cost / hours if hours > 0 else 0.0

    return NormalizedCost(
        record=MonthlyCostRecord(
            hours=hours,
            hourly_cost=round(hourly_cost, 2),
            monthly_cost=round(monthly_cost, 2),
            gross_pay=gross or None,
            cost_estimated=estimated,
            source_file=observation.source_file,
        )
    )


def manual_record(hours: Any, hourly_cost: Any, monthly_cost: Any = None) -> MonthlyCostRecord:
    """Record typed in by the user; monthly cost defaults to hours * hourly cost."""
    hours = sanitize_amount(hours)
    hourly = sanitize_amount(hourly_cost)
    monthly = sanitize_amount(monthly_cost) if monthly_cost is not None else hours * hourly
    return MonthlyCostRecord(
        hours=hours,
        hourly_cost=round(hourly, 2),
        monthly_cost=round(monthly, 2),
        cost_estimated=False,
    )
