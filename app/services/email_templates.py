# File: app/services/email_templates.py
from datetime import datetime
from html import escape
from typing import List, Optional
from app.core.config import settings
from app.core.timeutils import to_local
from app.models.deadline_notification import DeadlineNotificationCategory
from app.models.document_box import RequiredDocument

SUBMITTER_NAME_PLACEHOLDER = "{submitter_name}"

DEFAULT_GREETING_HTML = (
    "<p>Hello {submitter_name},</p>"
    "<p>This is a friendly reminder that the documents below have not been submitted yet.</p>"
)

DEFAULT_FOOTER_HTML = "<p>Thank you.<br/>This message was sent automatically, please do not reply.</p>"


def submission_link(document_box_id: int, submitter_id: int) -> str:
    return f"{settings.APP_URL.rstrip('/')}/submit/{document_box_id}/{submitter_id}"


def dashboard_link(document_box_id: int) -> str:
    return f"{settings.APP_URL.rstrip('/')}/dashboard/{document_box_id}"


def format_deadline(deadline: datetime) -> str:
    return to_local(deadline).strftime("%Y-%m-%d %H:%M")


def _required_documents_html(documents: List[RequiredDocument]) -> str:
    if not documents:
        return ""
    items = []
    for doc in documents:
        marker = "" if doc.is_required else " <span style='color: #6b7280;'>(optional)</span>"
        description = (
            f"<div style='font-size: 12px; color: #6b7280;'>{escape(doc.description)}</div>"
            if doc.description else ""
        )
        items.append(f"<li style='margin: 4px 0;'>{escape(doc.title)}{marker}{description}</li>")
    return f"<ul style='padding-left: 18px;'>{''.join(items)}</ul>"


def generate_reminder_email_html(
    submitter_name: str,
    document_box_title: str,
    document_box_description: Optional[str],
    deadline: datetime,
    required_documents: List[RequiredDocument],
    link: str,
    custom_greeting_html: Optional[str] = None,
    custom_footer_html: Optional[str] = None,
) -> str:
    """Reminder email for one submitter. Custom greeting/footer HTML is owner-authored and used as is."""
    greeting = (custom_greeting_html or DEFAULT_GREETING_HTML).replace(
        SUBMITTER_NAME_PLACEHOLDER, escape(submitter_name)
    )
    footer = custom_footer_html or DEFAULT_FOOTER_HTML
    description = (
        f"<p style='color: #4b5563;'>{escape(document_box_description)}</p>" if document_box_description else ""
    )

    return f"""
<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
</head>
<body style="font-family: Arial, sans-serif; line-height: 1.5; color: #333;">
    <div style="max-width: 600px; margin: 0 auto;">
        <div style="font-size: 14px; color: #1f2937;">{greeting}</div>

        <div style="background-color: #f9fafb; padding: 15px; border-radius: 6px; margin: 20px 0;">
            <h3 style="margin-top: 0; color: #374151;">{escape(document_box_title)}</h3>
            {description}
            <p style="margin: 5px 0;"><strong>Deadline:</strong> {format_deadline(deadline)}</p>
            {_required_documents_html(required_documents)}
            <a href="{escape(link, quote=True)}" style="display: inline-block; background-color: #2563eb; color: white; padding: 12px 24px; text-decoration: none; border-radius: 6px;">Submit documents</a>
        </div>

        <div style="font-size: 12px; color: #6b7280; margin-top: 16px;">{footer}</div>
    </div>
</body>
</html>
"""


def get_reminder_subject(document_box_title: str, remaining_days: int) -> str:
    if remaining_days <= 0:
        return f"[Reminder] {document_box_title}: the deadline is today"
    unit = "day" if remaining_days == 1 else "days"
    return f"[Reminder] {document_box_title}: {remaining_days} {unit} left until the deadline"


_NOTIFICATION_COPY = {
    DeadlineNotificationCategory.D_3: {
        "title": "Deadline in 3 days",
        "color": "#d97706",
    },
    DeadlineNotificationCategory.D_DAY_OPEN: {
        "title": "Deadline today",
        "color": "#dc2626",
    },
    DeadlineNotificationCategory.D_DAY_CLOSED: {
        "title": "Document box closed",
        "color": "#059669",
    },
}


def generate_deadline_notification_html(
    owner_name: Optional[str],
    document_box_title: str,
    document_box_id: int,
    deadline: datetime,
    total_submitters: int,
    submitted_count: int,
    not_submitted_count: int,
    category: DeadlineNotificationCategory,
    has_designated_submitters: bool = True,
) -> str:
    copy = _NOTIFICATION_COPY[category]
    title = escape(document_box_title)
    greeting = f"Hello {escape(owner_name)}," if owner_name else "Hello,"

    if category == DeadlineNotificationCategory.D_DAY_CLOSED:
        body_text = f"'{title}' has closed."
    elif category == DeadlineNotificationCategory.D_DAY_OPEN:
        body_text = f"'{title}' closes today."
    else:
        body_text = f"'{title}' closes in {settings.DEADLINE_NOTICE_DAYS} days."

    submitted_label = "Submitted" if has_designated_submitters else "Received"
    not_submitted_label = "Not submitted" if has_designated_submitters else "Rejected"

    return f"""
<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
</head>
<body style="font-family: Arial, sans-serif; line-height: 1.6; color: #1f2937; background-color: #f9fafb; margin: 0; padding: 20px;">
    <div style="max-width: 600px; margin: 0 auto; background-color: #ffffff; border-radius: 12px; overflow: hidden;">
        <div style="background-color: {copy['color']}; padding: 24px; text-align: center;">
            <h1 style="margin: 0; font-size: 20px; color: #ffffff;">{title}</h1>
            <p style="margin: 8px 0 0 0; font-size: 14px; color: #ffffff;">{copy['title']}</p>
        </div>
        <div style="padding: 32px 24px;">
            <p>{greeting}</p>
            <p style="font-weight: 500;">{body_text}</p>
            <div style="background-color: #f8fafc; border: 1px solid #e2e8f0; border-radius: 8px; padding: 20px; margin-bottom: 24px;">
                <p style="margin: 5px 0;"><strong>Submitters:</strong> {total_submitters}</p>
                <p style="margin: 5px 0;"><strong>{submitted_label}:</strong> {submitted_count}</p>
                <p style="margin: 5px 0;"><strong>{not_submitted_label}:</strong> {not_submitted_count}</p>
                <p style="margin: 5px 0;"><strong>Deadline:</strong> {format_deadline(deadline)}</p>
            </div>
            <div style="text-align: center;">
                <a href="{dashboard_link(document_box_id)}" style="display: inline-block; background-color: #2563eb; color: #ffffff; text-decoration: none; padding: 14px 32px; border-radius: 8px;">Open dashboard</a>
            </div>
        </div>
    </div>
</body>
</html>
"""


def get_deadline_notification_subject(document_box_title: str, category: DeadlineNotificationCategory) -> str:
    if category == DeadlineNotificationCategory.D_3:
        return f"'{document_box_title}' closes in {settings.DEADLINE_NOTICE_DAYS} days"
    if category == DeadlineNotificationCategory.D_DAY_OPEN:
        return f"'{document_box_title}' closes today"
    return f"'{document_box_title}' has closed"
