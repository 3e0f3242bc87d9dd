import pytest

from app.crud.reminder_log import format_recipient_summary
from app.models.deadline_notification import DeadlineNotificationCategory
from app.models.document_box import RequiredDocument
from app.services import email_templates
from tests.conftest import DEADLINE


def _reminder_html(**overrides):
    params = dict(
        submitter_name="Alice",
        document_box_title="Tax forms",
        document_box_description=None,
        deadline=DEADLINE,
        required_documents=[RequiredDocument(title="Passport copy", is_required=True)],
        link="https://docbox.test/submit/1/2",
    )
    params.update(overrides)
    return email_templates.generate_reminder_email_html(**params)


def test_reminder_uses_default_greeting_and_local_deadline():
    html = _reminder_html()
    assert "Hello Alice," in html
    assert "2025-01-10 18:00" in html
    assert "Passport copy" in html
    assert 'href="https://docbox.test/submit/1/2"' in html


def test_reminder_custom_greeting_and_footer():
    html = _reminder_html(
        custom_greeting_html="<p>Dear {submitter_name}, please hurry.</p>",
        custom_footer_html="<p>HR team</p>",
    )
    assert "Dear Alice, please hurry." in html
    assert "<p>HR team</p>" in html
    assert "friendly reminder" not in html


def test_reminder_escapes_user_text():
    html = _reminder_html(submitter_name="<b>Eve</b>", document_box_title="A & B")
    assert "&lt;b&gt;Eve&lt;/b&gt;" in html
    assert "A &amp; B" in html


@pytest.mark.parametrize("days,expected", [
    (3, "[Reminder] Tax forms: 3 days left until the deadline"),
    (1, "[Reminder] Tax forms: 1 day left until the deadline"),
    (0, "[Reminder] Tax forms: the deadline is today"),
])
def test_reminder_subject(days, expected):
    assert email_templates.get_reminder_subject("Tax forms", days) == expected


def test_submission_link_uses_app_url():
    assert email_templates.submission_link(4, 9) == "https://docbox.test/submit/4/9"
    assert email_templates.dashboard_link(4) == "https://docbox.test/dashboard/4"


def test_public_box_notification_labels():
    html = email_templates.generate_deadline_notification_html(
        owner_name=None,
        document_box_title="Open call",
        document_box_id=5,
        deadline=DEADLINE,
        total_submitters=4,
        submitted_count=3,
        not_submitted_count=1,
        category=DeadlineNotificationCategory.D_DAY_CLOSED,
        has_designated_submitters=False,
    )
    assert "Hello," in html
    assert "'Open call' has closed." in html
    assert "<strong>Rejected:</strong> 1" in html
    assert "https://docbox.test/dashboard/5" in html


@pytest.mark.parametrize("names,expected", [
    ([], "none"),
    (["Alice"], "Alice"),
    (["Alice", "Bob"], "Alice and 1 other"),
    (["Alice", "Bob", "Carol"], "Alice and 2 others"),
])
def test_recipient_summary(names, expected):
    assert format_recipient_summary(names) == expected
