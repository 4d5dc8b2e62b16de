import pytest
from bson import ObjectId
from fastapi.testclient import TestClient
from pymongo.errors import ServerSelectionTimeoutError
from pymongo.results import InsertOneResult

from vrise_intake.config import Settings
from vrise_intake.db.store import RecordStore
from vrise_intake.emails.notifier import Notifier
from vrise_intake.exceptions import NotificationError
from vrise_intake.main import create_app


class FakeCollection:
    def __init__(self, db, name):
        self.db = db
        self.name = name

    def with_options(self, **kwargs):
        return self

    def insert_one(self, document):
        if self.db.fail:
            raise ServerSelectionTimeoutError("localhost:27017: connection refused")
        inserted_id = ObjectId()
        self.db.inserted.append((self.name, inserted_id, document))
        return InsertOneResult(inserted_id, acknowledged=True)


class FakeDatabase:
    """Just enough of pymongo's Database for RecordStore."""

    name = "vrise_test"

    def __init__(self):
        self.inserted = []
        self.fail = False

    def __getitem__(self, name):
        return FakeCollection(self, name)

    def command(self, name):
        if self.fail:
            raise ServerSelectionTimeoutError("localhost:27017: connection refused")
        return {"ok": 1.0}


class RecordingTransport:
    """Stands in for the SMTP sender and remembers every message."""

    def __init__(self):
        self.sent = []
        self.failing = set()

    def __call__(self, settings, recipient, subject, body, attachments=()):
        if recipient in self.failing:
            raise NotificationError("connection refused", recipient)
        self.sent.append({
            "recipient": recipient,
            "subject": subject,
            "body": body,
            "attachments": list(attachments),
        })


@pytest.fixture
def settings():
    return Settings(
        mongodb_uri="mongodb://localhost:27017/vrise_test",
        email_enabled=True,
        email_user="mailer@example.com",
        email_password="app-password",
        email_from="V Rise <mailer@example.com>",
        notify_email="admin@example.com",
    )


@pytest.fixture
def db():
    return FakeDatabase()


@pytest.fixture
def store(db):
    return RecordStore(db)


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def notifier(settings, transport):
    return Notifier(settings, transport=transport)


@pytest.fixture
def app(settings, store, notifier):
    return create_app(settings, store=store, notifier=notifier)


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def internship_payload():
    return {
        "name": "Asha",
        "email": "asha@x.com",
        "mobile": "9876543210",
        "domain": "Full Stack Development",
        "college": "ABC College",
        "year": "2nd Year",
        "reason": "Learn to build apps",
    }


@pytest.fixture
def mock_interview_payload():
    return {
        "name": "Ravi",
        "email": "ravi@x.com",
        "mobile": "9123456780",
        "stack": "Python Development",
        "experience": "Fresher (0 months)",
    }


@pytest.fixture
def feedback_payload():
    return {
        "name": "Meera",
        "email": "meera@x.com",
        "feedbackType": "mock_interview",
        "rating": "5 - Excellent",
        "message": "The mock interview was really helpful.",
    }
