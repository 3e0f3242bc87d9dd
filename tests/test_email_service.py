import smtplib
import pytest
import requests

from app.core import email_service as email_module
from app.core.config import settings
from app.core.email_service import EmailMessage, EmailService, MessageResult, ResendTransport, SmtpTransport
from app.core.exceptions import EmailConfigurationError, EmailProviderError


def _messages(count):
    return [EmailMessage(to=f"user{i}@example.com", subject="Hello", html="<p>Hi</p>") for i in range(count)]


class FakeResponse:
    def __init__(self, status_code=200, body=None, text=""):
        self.status_code = status_code
        self._body = body
        self.text = text

    def json(self):
        return self._body


class RecordingTransport:
    def __init__(self):
        self.chunks = []

    def send_chunk(self, messages):
        self.chunks.append(list(messages))
        return [MessageResult(to=m.to, success=True) for m in messages]


@pytest.fixture
def resend():
    return ResendTransport("re_test", "https://api.resend.test/", "Docs <noreply@docbox.test>", timeout=5)


def test_resend_batch_maps_results_by_index(resend, monkeypatch):
    captured = {}

    def fake_post(url, json=None, headers=None, timeout=None):
        captured.update(url=url, json=json, headers=headers, timeout=timeout)
        return FakeResponse(body={
            "data": [{"id": "em_1"}, {"id": "em_3"}],
            "errors": [{"index": 1, "message": "Invalid `to` field"}],
        })

    monkeypatch.setattr(email_module.requests, "post", fake_post)

    results = resend.send_chunk(_messages(3))

    assert captured["url"] == "https://api.resend.test/emails/batch"
    assert captured["headers"]["x-batch-validation"] == "permissive"
    assert captured["headers"]["Authorization"] == "Bearer re_test"
    assert [m["to"] for m in captured["json"]] == [["user0@example.com"], ["user1@example.com"], ["user2@example.com"]]
    assert [r.success for r in results] == [True, False, True]
    assert results[0].provider_id == "em_1"
    assert results[2].provider_id == "em_3"
    assert results[1].error == "Invalid `to` field"


def test_resend_http_error_fails_whole_batch(resend, monkeypatch):
    monkeypatch.setattr(email_module.requests, "post", lambda *a, **kw: FakeResponse(status_code=429, text="slow down"))

    with pytest.raises(EmailProviderError) as exc_info:
        resend.send_chunk(_messages(2))

    assert exc_info.value.status_code == 429


def test_resend_network_error(resend, monkeypatch):
    def fake_post(*args, **kwargs):
        raise requests.exceptions.ConnectionError("connection reset")

    monkeypatch.setattr(email_module.requests, "post", fake_post)

    with pytest.raises(EmailProviderError):
        resend.send_chunk(_messages(1))


class FakeSMTP:
    instances = []
    refused = set()

    def __init__(self, server, port, timeout=None):
        self.sent = []
        self.logged_in = False
        FakeSMTP.instances.append(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def starttls(self, context=None):
        pass

    def login(self, username, password):
        self.logged_in = True

    def sendmail(self, from_addr, to_addrs, msg):
        if to_addrs[0] in FakeSMTP.refused:
            raise smtplib.SMTPRecipientsRefused({to_addrs[0]: (550, b"mailbox unavailable")})
        self.sent.append(to_addrs[0])


def test_smtp_reports_refused_recipients(monkeypatch):
    FakeSMTP.instances = []
    FakeSMTP.refused = {"user1@example.com"}
    monkeypatch.setattr(email_module.smtplib, "SMTP", FakeSMTP)
    transport = SmtpTransport("smtp.test", 587, "user", "secret", "noreply@docbox.test", "Docs", timeout=5)

    results = transport.send_chunk(_messages(3))

    assert [r.success for r in results] == [True, False, True]
    assert FakeSMTP.instances[0].logged_in is True
    assert FakeSMTP.instances[0].sent == ["user0@example.com", "user2@example.com"]


def test_smtp_connection_failure(monkeypatch):
    def refuse(*args, **kwargs):
        raise ConnectionRefusedError("no route")

    monkeypatch.setattr(email_module.smtplib, "SMTP", refuse)
    transport = SmtpTransport("smtp.test", 587, None, None, "noreply@docbox.test", "Docs", timeout=5)

    with pytest.raises(EmailProviderError):
        transport.send_chunk(_messages(1))


def test_send_batch_splits_into_provider_chunks():
    transport = RecordingTransport()
    service = EmailService(transport=transport)
    service.batch_size = 2
    service.batch_delay = 0

    result = service.send_batch(_messages(5))

    assert [len(chunk) for chunk in transport.chunks] == [2, 2, 1]
    assert len(result.accepted) == 5
    assert result.all_accepted is True


class FailingAfterTransport(RecordingTransport):
    """Accepts the first `healthy_chunks` chunks, then fails every call"""

    def __init__(self, healthy_chunks):
        super().__init__()
        self.healthy_chunks = healthy_chunks

    def send_chunk(self, messages):
        if len(self.chunks) >= self.healthy_chunks:
            raise EmailProviderError("Resend API error: 500", status_code=500)
        return super().send_chunk(messages)


def test_later_chunk_failure_keeps_delivered_results():
    service = EmailService(transport=FailingAfterTransport(healthy_chunks=1))
    service.batch_size = 1
    service.batch_delay = 0

    result = service.send_batch(_messages(3))

    assert [r.success for r in result.results] == [True, False, False]
    assert [r.to for r in result.accepted] == ["user0@example.com"]
    assert result.rejected[0].error == "Resend API error: 500"


def test_first_chunk_failure_raises():
    service = EmailService(transport=FailingAfterTransport(healthy_chunks=0))
    service.batch_size = 1

    with pytest.raises(EmailProviderError):
        service.send_batch(_messages(2))


def test_send_batch_with_sending_disabled(monkeypatch):
    monkeypatch.setattr(settings, "SEND_EMAILS", False)
    transport = RecordingTransport()

    result = EmailService(transport=transport).send_batch(_messages(2))

    assert result.all_accepted is True
    assert transport.chunks == []


def test_missing_api_key_in_production(monkeypatch):
    monkeypatch.setattr(settings, "ENVIRONMENT", "production")
    monkeypatch.setattr(settings, "EMAIL_PROVIDER", "resend")
    monkeypatch.setattr(settings, "RESEND_API_KEY", None)
    monkeypatch.setattr(settings, "SEND_EMAILS", True)

    with pytest.raises(EmailConfigurationError):
        EmailService().send_batch(_messages(1))


def test_missing_api_key_in_development_only_logs(monkeypatch):
    monkeypatch.setattr(settings, "ENVIRONMENT", "development")
    monkeypatch.setattr(settings, "EMAIL_PROVIDER", "resend")
    monkeypatch.setattr(settings, "RESEND_API_KEY", None)
    monkeypatch.setattr(settings, "SEND_EMAILS", True)

    result = EmailService().send_batch(_messages(2))

    assert result.all_accepted is True


def test_unknown_provider(monkeypatch):
    monkeypatch.setattr(settings, "EMAIL_PROVIDER", "pigeon")
    monkeypatch.setattr(settings, "SEND_EMAILS", True)

    with pytest.raises(EmailConfigurationError):
        EmailService().send_batch(_messages(1))


def test_empty_batch_is_noop():
    result = EmailService(transport=RecordingTransport()).send_batch([])
    assert result.results == []
    assert result.all_accepted is False
