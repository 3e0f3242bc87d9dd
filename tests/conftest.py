"""
Document box scheduler - test configuration and fixtures
"""
import os
import time
from datetime import datetime, timezone
from typing import Generator, List, Optional
import pytest
from faker import Faker
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

# Set testing environment before the app reads its settings
os.environ['ENVIRONMENT'] = 'development'
os.environ['DATABASE_URL'] = 'sqlite://'
os.environ['ENABLE_SCHEDULER'] = 'false'
os.environ['TIMEZONE'] = 'Asia/Seoul'
os.environ['NOTIFICATION_SEND_DELAY_SECONDS'] = '0'
os.environ['EMAIL_BATCH_DELAY_SECONDS'] = '0'
os.environ['APP_URL'] = 'https://docbox.test'
os.environ.pop('CRON_SECRET', None)
os.environ.pop('RESEND_API_KEY', None)

from app.main import app
from app.db.database import Base, get_db
from app.core.email_service import BatchSendResult, MessageResult
from app.models.user import User
from app.models.document_box import DocumentBox, DocumentBoxStatus, DocumentBoxRemindType, RemindType, RequiredDocument
from app.models.submitter import Submitter, SubmitterStatus
from app.models.reminder import ReminderSchedule, ReminderTimeUnit, ReminderChannel

fake = Faker()

test_engine = create_engine(
    'sqlite://',
    connect_args={'check_same_thread': False},
    poolclass=StaticPool,
)
TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


class FakeEmailService:
    """Captures batches instead of talking to a provider"""

    def __init__(self):
        self.batches = []
        self.error: Optional[Exception] = None
        self.delay = 0.0
        self.reject = set()
        self.calls = 0

    def send_batch(self, messages) -> BatchSendResult:
        self.calls += 1
        if self.delay:
            time.sleep(self.delay)
        if self.error is not None:
            raise self.error
        self.batches.append(list(messages))
        return BatchSendResult([
            MessageResult(
                to=m.to,
                success=m.to not in self.reject,
                error='rejected' if m.to in self.reject else None,
            )
            for m in messages
        ])

    @property
    def sent(self):
        return [m for batch in self.batches for m in batch]

    @property
    def recipients(self) -> List[str]:
        return [m.to for m in self.sent]


@pytest.fixture(scope='function')
def db_session() -> Generator[Session, None, None]:
    """Create a fresh database for each test"""
    Base.metadata.create_all(bind=test_engine)
    session = TestSessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()
        Base.metadata.drop_all(bind=test_engine)


@pytest.fixture
def session_factory(db_session):
    """Factory for jobs that open and close their own session"""
    return TestSessionLocal


@pytest.fixture
def client(db_session: Session) -> Generator[TestClient, None, None]:
    """Create test client with database override"""
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def email_service() -> FakeEmailService:
    return FakeEmailService()


@pytest.fixture
def owner(db_session: Session) -> User:
    user = User(email=fake.unique.email(), name=fake.name(), deadline_notifications_enabled=True)
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def make_box(db_session: Session, owner: User):
    """Build a document box with submitters, schedules and legacy remind flags"""
    def _make_box(
        deadline: datetime,
        status: DocumentBoxStatus = DocumentBoxStatus.OPEN,
        submitters=(SubmitterStatus.PENDING,),
        schedules=(),
        legacy_email: bool = False,
        has_submitter: Optional[bool] = True,
        box_owner: Optional[User] = None,
        title: Optional[str] = None,
    ) -> DocumentBox:
        box = DocumentBox(
            title=title or fake.sentence(nb_words=3).rstrip('.'),
            description=fake.sentence(),
            deadline=deadline,
            owner_id=(box_owner or owner).id,
            status=status,
            has_submitter=has_submitter,
        )
        box.required_documents = [RequiredDocument(title='ID card', order=0)]
        for submitter in submitters:
            if isinstance(submitter, Submitter):
                box.submitters.append(submitter)
            else:
                box.submitters.append(Submitter(name=fake.name(), email=fake.unique.email(), status=submitter))
        for index, schedule in enumerate(schedules):
            offset_value, offset_unit, time_of_day = schedule[:3]
            is_enabled = schedule[3] if len(schedule) > 3 else True
            box.reminder_schedules.append(ReminderSchedule(
                offset_value=offset_value,
                offset_unit=offset_unit,
                time_of_day=time_of_day,
                channel=ReminderChannel.EMAIL,
                order=index,
                is_enabled=is_enabled,
            ))
        if legacy_email:
            box.remind_types.append(DocumentBoxRemindType(remind_type=RemindType.EMAIL))
        db_session.add(box)
        db_session.commit()
        db_session.refresh(box)
        return box

    return _make_box


# Deadline 2025-01-10 18:00 KST; "3 days before at 09:00" fires 2025-01-07 09:00 KST
DEADLINE = utc(2025, 1, 10, 9, 0)
FIRE_AT = utc(2025, 1, 7, 0, 0)
THREE_DAYS_AT_NINE = (3, ReminderTimeUnit.DAY, '09:00')
