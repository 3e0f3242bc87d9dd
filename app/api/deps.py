import secrets
import logging
from typing import Optional
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from app.db.database import get_db
from app.core.config import settings
from app.crud.document_box import get_document_box
from app.models.document_box import DocumentBox

logger = logging.getLogger(__name__)

# auto_error=False so a missing header reaches verify_cron_auth as None
security = HTTPBearer(auto_error=False)


def verify_cron_auth(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> None:
    """Guard for the manual cron trigger endpoints"""
    if not settings.CRON_SECRET:
        if settings.is_production:
            logger.error("[Cron] CRON_SECRET is not configured")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Server configuration error",
            )
        logger.warning("[Cron] CRON_SECRET is not set, allowing request in development mode")
        return

    if credentials is None or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing or invalid authorization header",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not secrets.compare_digest(credentials.credentials, settings.CRON_SECRET):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid cron secret",
        )


def get_document_box_or_404(document_box_id: int, db: Session = Depends(get_db)) -> DocumentBox:
    box = get_document_box(db, document_box_id)
    if not box:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Document box not found",
        )
    return box
