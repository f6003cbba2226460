import os
import logging
from pydantic import BaseModel, Field
from typing import List, Optional
from dotenv import load_dotenv

load_dotenv()

class AISettings(BaseModel):
    openrouter_api_key: Optional[str] = Field(default=os.getenv("OPENROUTER_API_KEY"))
    model_name: str = Field(default=os.getenv("AI_MODEL_NAME", "google/gemini-2.0-flash-001"))
    kill_switch: bool = Field(default=os.getenv("AI_KILL_SWITCH", "false").lower() == "true")
    temperature: float = 0.1
    request_timeout_seconds: int = 60

    # Extraction quota (free-tier vision model limits)
    requests_per_minute: int = int(os.getenv("AI_REQUESTS_PER_MINUTE", "15"))
    requests_per_day: int = int(os.getenv("AI_REQUESTS_PER_DAY", "1500"))
    min_interval_seconds: float = float(os.getenv("AI_MIN_INTERVAL_SECONDS", "4.5"))

class CostSettings(BaseModel):
    default_monthly_hours: float = 160.0
    monthly_instalments: int = 13  # Italian "tredicesima" convention
    standard_annual_hours: float = 1720.0

    # Statutory on-costs applied to RAL when the employer cost is not stated
    inps_rate: float = 0.3309
    inail_rate: float = 0.01
    tfr_rate: float = 0.0741
    other_rate: float = 0.02

class UploadSettings(BaseModel):
    max_file_size: int = 10 * 1024 * 1024  # 10MB
    payslip_mime_types: List[str] = [
        "application/pdf",
        "image/jpeg",
        "image/jpg",
        "image/png",
    ]

class Config(BaseModel):
    app_name: str = "R&S Credit Manager"
    environment: str = os.getenv("APP_ENV", "development")
    api_prefix: str = "/api"
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    # Database
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./rs_credit.db")

    # Tenant scoping (auth is handled upstream)
    tenant_header: str = "X-User-ID"

    # Components
    ai: AISettings = AISettings()
    costs: CostSettings = CostSettings()
    uploads: UploadSettings = UploadSettings()

    version: str = "1.0.0"
    build_id: str = os.getenv("BUILD_ID", "local")
    request_id_header: str = "X-Request-ID"

    # CORS: comma-separated origins loaded from env
    cors_origins: List[str] = Field(
        default_factory=lambda: [
            o.strip()
            for o in os.getenv(
                "CORS_ORIGINS",
                "http://localhost:3000,http://127.0.0.1:3000",
            ).split(",")
            if o.strip()
        ]
    )

settings = Config()

# --- Startup Validation for Production ---
_logger = logging.getLogger(__name__)
if settings.environment == "production" and settings.database_url.startswith("sqlite"):
    raise RuntimeError(
        "FATAL: DATABASE_URL points to SQLite in production. "
        "Set DATABASE_URL to the tenant database."
    )
if not settings.ai.openrouter_api_key:
    _logger.warning("OPENROUTER_API_KEY not set - payslip extraction runs in manual mode.")
