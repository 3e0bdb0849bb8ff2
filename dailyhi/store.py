# dailyhi/store.py
"""Subscription persistence on top of Flask-SQLAlchemy."""

import logging

from sqlalchemy.exc import IntegrityError

from dailyhi.errors import DuplicateKey
from dailyhi.models.subscription import db, Subscription

logger = logging.getLogger(__name__)

UNIQUE_FIELDS = ('code', 'email')


def duplicate_field(error):
    """Name the unique column an IntegrityError collided on.

    Matches the column or index name (sqlite: ``subscriptions.code``,
    postgres: ``ix_subscriptions_code`` / ``Key (code)=``), never the value.
    """
    detail = str(getattr(error, 'orig', error)).lower()
    for field in UNIQUE_FIELDS:
        markers = (f'subscriptions.{field}', f'subscriptions_{field}', f'key ({field})=')
        if any(marker in detail for marker in markers):
            return field
    return 'email'


class SubscriptionStore:
    """Create, look up and stream subscriptions.

    Uniqueness of email and code is enforced by the table's unique
    constraints; an insert that violates either raises DuplicateKey.
    """

    def __init__(self, session=None, batch_size=100):
        self.session = session or db.session
        self.batch_size = batch_size

    def create(self, subscription):
        existing = self.find_by_email(subscription.email)
        if existing:
            raise DuplicateKey('email', subscription.email)

        self.session.add(subscription)
        try:
            self.session.commit()
        except IntegrityError as e:
            self.session.rollback()
            field = duplicate_field(e)
            raise DuplicateKey(field, getattr(subscription, field)) from e
        return subscription

    def get(self, subscription_id):
        return self.session.get(Subscription, subscription_id)

    def find_by_code(self, code):
        if not code:
            return None
        return self.session.query(Subscription).filter_by(code=code).first()

    def find_by_email(self, email):
        return self.session.query(Subscription).filter_by(email=email).first()

    def mark_verified(self, subscription_id):
        subscription = self.get(subscription_id)
        if subscription is None or subscription.verified:
            return subscription
        subscription.verified = True
        self.session.commit()
        return subscription

    def update_timezone(self, subscription, offset):
        subscription.timezone = offset
        self.session.commit()
        return subscription

    def find_verified_by_offset(self, offset):
        """Stream verified subscriptions in one timezone bucket."""
        query = (self.session.query(Subscription)
                 .filter_by(verified=True, timezone=offset)
                 .order_by(Subscription.id)
                 .yield_per(self.batch_size))
        for subscription in query:
            yield subscription

    def mark_sent(self, subscription, day):
        """Record the local date of the last digest; persisted on commit()."""
        subscription.last_sent_on = day

    def commit(self):
        self.session.commit()
