"""
Request-scoped dependencies.

Authentication happens upstream; the tenant arrives in the X-User-ID header.
"""
import logging
from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session
from typing import Optional

from rs_credit.database import get_db
from rs_credit.services.timesheet_service import TimesheetService

logger = logging.getLogger(__name__)


def get_tenant_id(x_user_id: Optional[str] = Header(default=None)) -> str:
    if not x_user_id or not x_user_id.strip():
        logger.warning("Request rejected: missing tenant header")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-User-ID header",
        )
    return x_user_id.strip()


def get_timesheet_service(
    db: Session = Depends(get_db),
    user_id: str = Depends(get_tenant_id),
) -> TimesheetService:
    """One service (and one in-memory state) per request."""
    return TimesheetService(db, user_id)
