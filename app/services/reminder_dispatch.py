# File: app/services/reminder_dispatch.py
"""
Dispatch & logging.

Each dispatch renders its messages, hands them to the email service as one
batch call per box, and writes the log row only after the provider accepted the
batch. The log row is what later idempotency checks look at, so a failed or
timed-out send leaves nothing behind and the next tick may try again.
"""
import logging
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Callable, List, Optional, Sequence

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.email_service import BatchSendResult, EmailMessage
from app.core.exceptions import DispatchTimeoutError, EmailProviderError
from app.crud.deadline_notification import create_notification_log
from app.crud.reminder_log import create_reminder_log
from app.models.deadline_notification import DeadlineNotificationCategory
from app.models.document_box import DocumentBox
from app.models.reminder import ReminderChannel, ReminderSchedule
from app.models.submitter import Submitter, SubmitterStatus
from app.services import email_templates
from app.services.reminder_rules import days_left

logger = logging.getLogger(__name__)

# Provider calls run here so that a stuck call can be abandoned after the timeout
_send_executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="email-dispatch")


@dataclass
class ReminderDispatch:
    document_box: DocumentBox
    recipients: Sequence[Submitter]
    now: datetime
    is_auto: bool = True
    channel: ReminderChannel = ReminderChannel.EMAIL
    schedule: Optional[ReminderSchedule] = None
    trigger_key: Optional[str] = None
    fire_at: Optional[datetime] = None


@dataclass
class DispatchOutcome:
    document_box_id: int
    success: bool
    emails_sent: int = 0
    log_id: Optional[int] = None
    failed_recipients: List[str] = field(default_factory=list)
    error: Optional[str] = None
    duplicate: bool = False


def run_with_timeout(func: Callable, timeout: Optional[float], *args, **kwargs):
    """Run func in the dispatch pool and wait at most `timeout` seconds"""
    if timeout is None or timeout <= 0:
        return func(*args, **kwargs)

    future = _send_executor.submit(func, *args, **kwargs)
    try:
        return future.result(timeout=timeout)
    except FutureTimeoutError:
        future.cancel()
        raise DispatchTimeoutError(f"Email provider call exceeded {timeout:.0f}s")


def build_reminder_messages(dispatch: ReminderDispatch) -> List[EmailMessage]:
    box = dispatch.document_box
    schedule = dispatch.schedule
    subject = email_templates.get_reminder_subject(box.title, days_left(box.deadline, dispatch.now))

    messages = []
    for submitter in dispatch.recipients:
        html = email_templates.generate_reminder_email_html(
            submitter_name=submitter.name,
            document_box_title=box.title,
            document_box_description=box.description,
            deadline=box.deadline,
            required_documents=list(box.required_documents),
            link=email_templates.submission_link(box.id, submitter.id),
            custom_greeting_html=schedule.greeting_html if schedule else None,
            custom_footer_html=schedule.footer_html if schedule else None,
        )
        messages.append(EmailMessage(to=submitter.email.strip(), subject=subject, html=html))
    return messages


def dispatch_reminder(db: Session, dispatch: ReminderDispatch, email_service, timeout: Optional[float] = None) -> DispatchOutcome:
    """Send one box's reminder batch and log the accepted recipients.

    EmailConfigurationError propagates so the caller can abort the dispatch step.
    """
    box = dispatch.document_box
    outcome = DispatchOutcome(document_box_id=box.id, success=False)
    if timeout is None:
        timeout = settings.DISPATCH_TIMEOUT_SECONDS

    messages = build_reminder_messages(dispatch)

    try:
        result: BatchSendResult = run_with_timeout(email_service.send_batch, timeout, messages)
    except (EmailProviderError, DispatchTimeoutError) as e:
        logger.error(f"Reminder batch failed for box {box.id}: {e.message}")
        outcome.error = e.message
        return outcome

    accepted = {r.to for r in result.accepted}
    outcome.failed_recipients = [r.to for r in result.rejected]
    if outcome.failed_recipients:
        logger.warning(f"Provider rejected {len(outcome.failed_recipients)} reminder(s) for box {box.id}")

    delivered = [s for s in dispatch.recipients if s.email.strip() in accepted]
    if not delivered:
        outcome.error = "Provider accepted no messages"
        return outcome

    try:
        log = create_reminder_log(
            db,
            document_box_id=box.id,
            submitter_ids=[s.id for s in delivered],
            sent_at=dispatch.now,
            is_auto=dispatch.is_auto,
            channel=dispatch.channel,
            schedule_id=dispatch.schedule.id if dispatch.schedule else None,
            trigger_key=dispatch.trigger_key,
            fire_at=dispatch.fire_at,
        )
    except IntegrityError:
        # Another run logged the same trigger first
        db.rollback()
        logger.warning(f"Reminder log for box {box.id} trigger {dispatch.trigger_key} already exists")
        outcome.duplicate = True
        outcome.error = "Reminder already logged"
        return outcome

    outcome.success = True
    outcome.emails_sent = len(delivered)
    outcome.log_id = log.id
    logger.info(f"Sent reminder for box {box.id} to {len(delivered)} submitter(s), log {log.id}")
    return outcome


def submission_counts(box: DocumentBox):
    """(total, submitted, not_submitted). Public boxes count rejected entries as not submitted."""
    total = len(box.submitters)
    submitted = sum(1 for s in box.submitters if s.status == SubmitterStatus.SUBMITTED)
    if box.has_designated_submitters:
        not_submitted = total - submitted
    else:
        not_submitted = sum(1 for s in box.submitters if s.status == SubmitterStatus.REJECTED)
    return total, submitted, not_submitted


def dispatch_owner_notification(
    db: Session,
    box: DocumentBox,
    category: DeadlineNotificationCategory,
    notification_date: date,
    now: datetime,
    email_service,
    timeout: Optional[float] = None,
) -> DispatchOutcome:
    """Send one deadline notification to the box owner and log it"""
    outcome = DispatchOutcome(document_box_id=box.id, success=False)
    owner = box.owner
    owner_email = (owner.email or "").strip() if owner else ""
    if not owner_email:
        outcome.error = "Owner email not found"
        return outcome
    if timeout is None:
        timeout = settings.DISPATCH_TIMEOUT_SECONDS

    total, submitted, not_submitted = submission_counts(box)
    html = email_templates.generate_deadline_notification_html(
        owner_name=owner.name,
        document_box_title=box.title,
        document_box_id=box.id,
        deadline=box.deadline,
        total_submitters=total,
        submitted_count=submitted,
        not_submitted_count=not_submitted,
        category=category,
        has_designated_submitters=box.has_designated_submitters,
    )
    message = EmailMessage(
        to=owner_email,
        subject=email_templates.get_deadline_notification_subject(box.title, category),
        html=html,
    )

    try:
        result: BatchSendResult = run_with_timeout(email_service.send_batch, timeout, [message])
    except (EmailProviderError, DispatchTimeoutError) as e:
        logger.error(f"Deadline notification failed for box {box.id}: {e.message}")
        outcome.error = e.message
        return outcome

    if not result.all_accepted:
        outcome.error = result.rejected[0].error if result.rejected else "Provider accepted no messages"
        outcome.failed_recipients = [owner_email]
        return outcome

    try:
        log = create_notification_log(
            db,
            document_box_id=box.id,
            category=category,
            notification_date=notification_date,
            recipient_email=owner_email,
            sent_at=now,
        )
    except IntegrityError:
        db.rollback()
        outcome.duplicate = True
        outcome.error = "Notification already logged"
        return outcome

    outcome.success = True
    outcome.emails_sent = 1
    outcome.log_id = log.id
    logger.info(f"Sent {category.value} notification for box {box.id} to {owner_email}")
    return outcome
