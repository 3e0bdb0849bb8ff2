# dailyhi/subscriptions.py
"""Subscriber lifecycle: signup (pending), verification, timezone preference."""

import logging

from flask import current_app, render_template

from dailyhi.codes import generate_code
from dailyhi.errors import NotPending, SendError, UnknownCode
from dailyhi.mailer import MessageBody
from dailyhi.models.subscription import Subscription
from dailyhi.store import SubscriptionStore
from dailyhi.timezones import validate_offset

logger = logging.getLogger(__name__)

VERIFY_SUBJECT = "Please verify your email address"


def verification_url(hostname, code):
    return f"http://{hostname}/verify/{code}"


def render_verification(subscription, hostname):
    text = render_template(
        'email/verify.txt',
        subscription=subscription,
        url=verification_url(hostname, subscription.code),
    )
    return MessageBody.plain(text)


class SubscriptionService:
    def __init__(self, store, validator, mailer, hostname,
                 default_timezone=-8, code_generator=generate_code,
                 render=render_verification):
        self.store = store
        self.validator = validator
        self.mailer = mailer
        self.hostname = hostname
        self.default_timezone = default_timezone
        self.code_generator = code_generator
        self.render = render

    @classmethod
    def from_app(cls, app, store):
        return cls(
            store=store,
            validator=app.extensions['dailyhi.validator'],
            mailer=app.extensions['dailyhi.mailer'],
            hostname=app.config['HOSTNAME'],
            default_timezone=app.config['DEFAULT_TIMEZONE_OFFSET'],
        )

    def create(self, raw_email, timezone=None):
        """Validate, persist a pending subscription and send its verification link.

        Raises InvalidEmail, InvalidTimezone or DuplicateKey; nothing is
        stored or sent in that case.
        """
        offset = self.default_timezone if timezone in (None, '') else validate_offset(timezone)
        email = self.validator.validate(raw_email)

        subscription = Subscription(
            email=email,
            code=self.code_generator(),
            verified=False,
            timezone=offset,
        )
        self.store.create(subscription)
        logger.info(f"✅ New subscription {email} (offset {offset:+d})")

        self.request_verification(subscription)
        return subscription

    def request_verification(self, subscription):
        """Send the verification link. Returns False if the mailer failed."""
        try:
            body = self.render(subscription, self.hostname)
            self.mailer.send(subscription.email, VERIFY_SUBJECT, body)
        except SendError as e:
            logger.error(f"❌ Verification email to {subscription.email} failed: {e}")
            return False
        return True

    def resend_verification(self, raw_email):
        """Send the link again to a subscription that is still pending.

        Raises InvalidEmail for a malformed address and NotPending when
        there is no unverified subscription for it. Returns False if the
        mailer failed.
        """
        email = self.validator.normalize(raw_email)
        subscription = self.store.find_by_email(email)
        if subscription is None or subscription.verified:
            raise NotPending(email)
        logger.info(f"🔁 Re-sending verification link to {email}")
        return self.request_verification(subscription)

    def verify(self, code):
        """Mark the subscription holding code as verified; verifying twice is harmless."""
        subscription = self.store.find_by_code(code)
        if subscription is None:
            raise UnknownCode(code)
        if not subscription.verified:
            self.store.mark_verified(subscription.id)
            logger.info(f"🔓 Verified {subscription.email}")
        return subscription

    def update_timezone(self, code, timezone):
        subscription = self.store.find_by_code(code)
        if subscription is None:
            raise UnknownCode(code)
        offset = validate_offset(timezone)
        if offset != subscription.timezone:
            self.store.update_timezone(subscription, offset)
            logger.info(f"🌐 {subscription.email} moved to offset {offset:+d}")
        return subscription


def get_service():
    return SubscriptionService.from_app(current_app, SubscriptionStore())
