"""
Payslip Extraction Boundary

Runs uploaded payslips through the document-extraction function and turns
the untyped replies into NormalizedPayslip values. Nothing untyped gets past
this module.

Batch behaviour:
- each file is validated and extracted on its own; one failure never aborts
  the batch, it is reported as {file, error};
- when AI is unavailable every file becomes a manual-entry template;
- once the provider reports an exhausted quota the rest of the batch
  switches to manual templates.
"""

import logging
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from rs_credit.core.config import settings
from rs_credit.core.exceptions import (
    AIKillSwitchError,
    ExternalServiceError,
    QuotaExceededError,
    ValidationError,
)
from rs_credit.schemas.employee import MonthlyCostRecord
from rs_credit.schemas.extraction import (
    ExtractionFailure,
    ExtractionOutcome,
    NormalizedPayslip,
    PayslipExtraction,
    PayslipFile,
)
from rs_credit.services.cost_history import normalize_month
from rs_credit.services.cost_normalizer import (
    DEFAULT_MONTHLY_HOURS,
    CostObservation,
    normalize_cost,
)
from rs_credit.services.openrouter_client import extract_payslip
from rs_credit.services.rate_limiter import ExtractionRateLimiter

logger = logging.getLogger(__name__)

ExtractFn = Callable[[bytes, str], Union[Dict[str, Any], List[Dict[str, Any]]]]

MISSING_NAME = "Nome non trovato"


def validate_payslip_file(file: PayslipFile) -> None:
    """Reject unsupported mime types and files above the upload limit."""
    if file.mime_type not in settings.uploads.payslip_mime_types:
        raise ValidationError(
            f"Unsupported file type: {file.mime_type}",
            details={"file": file.file_name, "mime_type": file.mime_type},
        )
    if len(file.content) > settings.uploads.max_file_size:
        raise ValidationError(
            "File too large (max 10MB)",
            details={"file": file.file_name, "size": len(file.content)},
        )


def manual_template(file_name: str) -> NormalizedPayslip:
    """Empty payslip for the user to complete by hand."""
    return NormalizedPayslip(
        name="",
        month=normalize_month(None),
        record=MonthlyCostRecord(hours=DEFAULT_MONTHLY_HOURS, source_file=file_name),
        file_name=file_name,
        manual_mode=True,
    )


def normalize_payslip(extraction: PayslipExtraction, file_name: str) -> NormalizedPayslip:
    normalized = normalize_cost(CostObservation(
        hours_in_month=extraction.ore_mensili,
        gross_monthly_pay=extraction.retribuzione_lorda,
        employer_cost_override=extraction.costo_azienda,
        source_file=file_name,
    ))
    return NormalizedPayslip(
        name=extraction.nome_completo or MISSING_NAME,
        fiscal_code=(extraction.codice_fiscale or "").upper(),
        role=extraction.qualifica or "Dipendente",
        month=normalize_month(extraction.mese),
        record=normalized.record,
        file_name=file_name,
        manual_mode=normalized.needs_manual_completion,
    )


def _default_ai_available() -> bool:
    return bool(settings.ai.openrouter_api_key) and not settings.ai.kill_switch


class PayslipExtractor:
    def __init__(
        self,
        extract_fn: ExtractFn = extract_payslip,
        rate_limiter: Optional[ExtractionRateLimiter] = None,
        ai_available: Callable[[], bool] = _default_ai_available,
    ):
        self.extract_fn = extract_fn
        self.rate_limiter = rate_limiter or ExtractionRateLimiter()
        self._ai_available = ai_available

    def is_available(self) -> bool:
        return self._ai_available()

    def status(self) -> Dict[str, Any]:
        return {
            "configured": bool(settings.ai.openrouter_api_key),
            "disabled": settings.ai.kill_switch,
            **self.rate_limiter.status(),
        }

    def extract_file(self, file: PayslipFile) -> List[NormalizedPayslip]:
        """
        Extract one file. A PDF may contain several monthly payslips.

        Raises:
            QuotaExceededError: local or provider quota exhausted.
            ExternalServiceError: the extraction call or its reply failed.
        """
        self.rate_limiter.acquire()
        raw = self.extract_fn(file.content, file.mime_type)

        items = raw if isinstance(raw, list) else [raw]
        if not items:
            raise ExternalServiceError("AI reply contained no payslips.", error_code="AI_INVALID_RESPONSE")

        payslips = []
        for item in items:
            if not isinstance(item, dict):
                raise ExternalServiceError("AI reply has an unexpected shape.", error_code="AI_INVALID_RESPONSE")
            try:
                extraction = PayslipExtraction.model_validate(item)
            except PydanticValidationError as e:
                raise ExternalServiceError(
                    "AI reply failed validation.",
                    error_code="AI_INVALID_RESPONSE",
                    details={"errors": e.errors(include_url=False)},
                ) from e
            name = file.file_name
            if len(items) > 1 and extraction.mese:
                name = f"{file.file_name} - {extraction.mese}"
            payslips.append(normalize_payslip(extraction, name))
        return payslips

    def extract_batch(self, files: Iterable[PayslipFile]) -> ExtractionOutcome:
        outcome = ExtractionOutcome()
        manual_mode = not self.is_available()
        if manual_mode:
            logger.info("AI extraction unavailable, returning manual templates")

        for file in files:
            try:
                validate_payslip_file(file)
            except ValidationError as e:
                outcome.failures.append(ExtractionFailure(file=file.file_name, error=e.message))
                continue

            if manual_mode:
                outcome.manual_templates.append(manual_template(file.file_name))
                continue

            try:
                extracted = self.extract_file(file)
            except (QuotaExceededError, AIKillSwitchError) as e:
                logger.warning(f"Switching to manual mode after {file.file_name}: {e.message}")
                outcome.failures.append(ExtractionFailure(file=file.file_name, error=e.message))
                outcome.manual_templates.append(manual_template(file.file_name))
                manual_mode = True
                continue
            except (ExternalServiceError, ValidationError) as e:
                logger.error(f"Extraction failed for {file.file_name}: {e.message}")
                outcome.failures.append(ExtractionFailure(file=file.file_name, error=e.message))
                continue

            for payslip in extracted:
                if payslip.manual_mode:
                    outcome.manual_templates.append(payslip)
                else:
                    outcome.payslips.append(payslip)

        return outcome


# Process-wide extractor; the quota belongs to the API key, not to a request
_extractor: Optional[PayslipExtractor] = None


def get_extractor() -> PayslipExtractor:
    global _extractor
    if _extractor is None:
        _extractor = PayslipExtractor()
    return _extractor
