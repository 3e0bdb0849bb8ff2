"""
Pytest configuration for the Daily Hi tests

Provides an app bound to in-memory sqlite plus stand-ins for DNS, mail and
content so no test touches the network.
"""

import threading

import pytest

from dailyhi.errors import SendError
from dailyhi.main import create_app
from dailyhi.models.subscription import db, Subscription
from dailyhi.validation import EmailValidator


class StubResolver:
    """MX lookups answered from a dict; unknown domains have no records."""

    def __init__(self, records=None, error=None):
        self.records = records or {}
        self.error = error
        self.lookups = []

    def lookup_mx(self, domain):
        self.lookups.append(domain)
        if self.error is not None:
            raise self.error
        return self.records.get(domain, [])


class RecordingMailer:
    """Keeps every message; raises SendError for addresses in fail_for."""

    def __init__(self, fail_for=()):
        self.fail_for = set(fail_for)
        self.sent = []
        self._lock = threading.Lock()

    def send(self, to, subject, body):
        if to in self.fail_for:
            raise SendError(f"mailbox unavailable: {to}")
        with self._lock:
            self.sent.append((to, subject, body))

    @property
    def recipients(self):
        return sorted(to for to, _, _ in self.sent)


class FixedContent:
    def __init__(self, photo=None, fact="Octopuses have three hearts."):
        self.photo = photo
        self.fact = fact

    def find_photo(self, local_time):
        return self.photo

    def fun_fact(self, local_time):
        return self.fact


@pytest.fixture
def stub_resolver():
    return StubResolver


@pytest.fixture
def recording_mailer():
    return RecordingMailer


@pytest.fixture
def resolver():
    return StubResolver({
        'dailyhi.com': ['mx1.dailyhi.com'],
        'gmail.com': ['gmail-smtp-in.l.google.com'],
        'fastmail.fm': ['in1-smtp.messagingengine.com'],
    })


@pytest.fixture
def mailer():
    return RecordingMailer()


@pytest.fixture
def content():
    return FixedContent()


@pytest.fixture
def app(resolver, mailer, content):
    app = create_app('testing')
    app.extensions['dailyhi.validator'] = EmailValidator(resolver)
    app.extensions['dailyhi.mailer'] = mailer
    app.extensions['dailyhi.content'] = content

    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def add_subscription(app):
    """Insert a subscription directly, bypassing signup."""
    counter = {'n': 0}

    def _add(email, timezone=-8, verified=True):
        counter['n'] += 1
        subscription = Subscription(
            email=email,
            code=f"{counter['n']:032x}",
            verified=verified,
            timezone=timezone,
        )
        db.session.add(subscription)
        db.session.commit()
        return subscription

    return _add
