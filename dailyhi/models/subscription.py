# dailyhi/models/subscription.py

from datetime import datetime, timedelta, timezone

from flask_sqlalchemy import SQLAlchemy
from sqlalchemy.orm import validates

from dailyhi.timezones import DELIVERY_HOUR

db = SQLAlchemy()


def utcnow():
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Subscription(db.Model):
    __tablename__ = 'subscriptions'

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(64), unique=True, nullable=False, index=True)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    verified = db.Column(db.Boolean, nullable=False, default=False, index=True)
    timezone = db.Column(db.SmallInteger, nullable=False, default=-8, index=True)
    last_sent_on = db.Column(db.Date)
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    @validates('email', 'code')
    def validate_readonly(self, key, value):
        """email and code can be set once and never changed."""
        current = getattr(self, key)
        if current is not None and current != value:
            raise AttributeError(f"{key} is read-only once set")
        return value

    def delivery_instant(self, on=None, delivery_hour=DELIVERY_HOUR):
        """Return the naive UTC instant at which this subscription's bucket is served on a date.

        Passing the result to the scheduler delivers to this subscriber's
        bucket immediately.
        """
        if on is None:
            on = utcnow().date()
        midnight = datetime(on.year, on.month, on.day)
        return midnight + timedelta(hours=delivery_hour - self.timezone)

    def already_sent_on(self, day):
        return self.last_sent_on is not None and self.last_sent_on == day

    def to_dict(self):
        return {
            'id': self.id,
            'email': self.email,
            'verified': self.verified,
            'timezone': self.timezone,
            'last_sent_on': self.last_sent_on.isoformat() if self.last_sent_on else None,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f'<Subscription {self.email}>'
