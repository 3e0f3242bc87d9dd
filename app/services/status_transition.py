# File: app/services/status_transition.py
from datetime import datetime
from typing import Any, Dict, Optional
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from app.core.exceptions import InvalidStatusTransitionError
from app.core.timeutils import as_utc, utcnow
from app.crud.document_box import bulk_update_status, get_expired_open_boxes
from app.models.document_box import DocumentBox, DocumentBoxStatus
import logging

logger = logging.getLogger(__name__)

# target status -> statuses an owner may move from
MANUAL_TRANSITIONS = {
    DocumentBoxStatus.OPEN_RESUME: (DocumentBoxStatus.CLOSED, DocumentBoxStatus.CLOSED_EXPIRED),
    DocumentBoxStatus.CLOSED: (DocumentBoxStatus.OPEN, DocumentBoxStatus.OPEN_SOMEONE, DocumentBoxStatus.OPEN_RESUME),
    DocumentBoxStatus.OPEN_SOMEONE: (DocumentBoxStatus.CLOSED, DocumentBoxStatus.CLOSED_EXPIRED, DocumentBoxStatus.OPEN_RESUME),
}


def process_status_transition(db: Session, now: Optional[datetime] = None) -> Dict[str, Any]:
    """Close every OPEN box whose deadline has passed.

    Only OPEN matches the selection, so a second run finds nothing and
    OPEN_SOMEONE/OPEN_RESUME boxes are never touched. The update is one
    statement; on failure the session is rolled back and the error propagates.
    """
    now = as_utc(now or utcnow())
    logger.info(f"[Status-Transition] Running at {now.isoformat()}")

    try:
        expired = get_expired_open_boxes(db, now)
        logger.info(f"[Status-Transition] Found {len(expired)} expired OPEN document boxes")

        details = [
            {
                "document_box_id": box.id,
                "title": box.title,
                "deadline": as_utc(box.deadline).isoformat(),
            }
            for box in expired
        ]

        transitioned = bulk_update_status(
            db,
            [box.id for box in expired],
            DocumentBoxStatus.CLOSED_EXPIRED,
            only_from=DocumentBoxStatus.OPEN,
        )
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("[Status-Transition] Transition step failed, nothing was changed")
        raise

    # Rows were updated without the ORM; drop stale state
    db.expire_all()

    if transitioned:
        logger.info(f"[Status-Transition] Transitioned {transitioned} boxes to CLOSED_EXPIRED")

    return {
        "success": True,
        "message": f"Processed at {now.isoformat()}. Transitioned {transitioned} document boxes.",
        "counts": {"found": len(expired), "transitioned": transitioned},
        "details": details,
    }


def change_document_box_status(
    db: Session,
    box: DocumentBox,
    new_status: DocumentBoxStatus,
    deadline: Optional[datetime] = None,
    now: Optional[datetime] = None,
) -> DocumentBox:
    """Owner-initiated status change.

    Moving to OPEN starts a fresh cycle and needs a deadline in the future
    (given or already on the box). CLOSED_EXPIRED is reserved for the
    automatic transition.
    """
    now = as_utc(now or utcnow())
    current = box.status

    if new_status == current and deadline is None:
        raise InvalidStatusTransitionError(f"Document box is already {current.value}")

    if new_status == DocumentBoxStatus.CLOSED_EXPIRED:
        raise InvalidStatusTransitionError("CLOSED_EXPIRED is set automatically when the deadline passes")

    if new_status == DocumentBoxStatus.OPEN:
        effective_deadline = as_utc(deadline or box.deadline)
        if effective_deadline <= now:
            raise InvalidStatusTransitionError(
                "Reopening as OPEN requires a deadline in the future",
                details={"deadline": effective_deadline.isoformat()},
            )
        box.deadline = effective_deadline
    else:
        allowed_from = MANUAL_TRANSITIONS.get(new_status, ())
        if current not in allowed_from:
            raise InvalidStatusTransitionError(
                f"Cannot change status from {current.value} to {new_status.value}"
            )
        if deadline is not None:
            box.deadline = as_utc(deadline)

    box.status = new_status
    db.commit()
    db.refresh(box)

    logger.info(f"Document box {box.id} status changed {current.value} -> {new_status.value}")
    return box
