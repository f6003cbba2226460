from pydantic import BaseModel, Field, model_validator
from datetime import date
from typing import List, Optional
import enum

class ProjectStatus(str, enum.Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    SUSPENDED = "suspended"

class Project(BaseModel):
    id: str
    name: str = ""
    fiscal_year: int = Field(default_factory=lambda: date.today().year)
    # Free string: unknown types fall back to the default credit rate
    project_type: str = "ricerca_industriale"
    status: ProjectStatus = ProjectStatus.ACTIVE
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    description: str = ""
    assigned_invoice_ids: List[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_date_range(self) -> "Project":
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise ValueError("start_date must not be after end_date")
        return self

class ProjectCreate(BaseModel):
    name: str = ""
    fiscal_year: Optional[int] = None
    project_type: str = "ricerca_industriale"
    description: str = ""
    start_date: Optional[date] = None
    end_date: Optional[date] = None

class ProjectUpdate(BaseModel):
    name: Optional[str] = None
    fiscal_year: Optional[int] = None
    project_type: Optional[str] = None
    status: Optional[ProjectStatus] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    description: Optional[str] = None

class ProjectTypeInfo(BaseModel):
    value: str
    label: str
    rate: float
    color: str
