# Models package
# Importing modules here ensures they are registered with SQLAlchemy Base
from . import employee, project, allocation, invoice

# Explicit class exports for cleaner imports
from .employee import EmployeeRecord
from .project import ProjectRecord
from .allocation import AllocationRecord
from .invoice import InvoiceRecord

__all__ = [
    "EmployeeRecord",
    "ProjectRecord",
    "AllocationRecord",
    "InvoiceRecord",
]
