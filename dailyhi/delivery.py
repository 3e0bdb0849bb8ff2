# dailyhi/delivery.py
"""Hourly digest delivery.

Each call to ``DeliveryScheduler.run_once`` serves the timezone bucket(s)
whose local clock currently reads the delivery hour (6 AM). Content and
per-subscriber send failures are contained and reported; they never abort
the run.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from flask import current_app, render_template

from dailyhi.errors import NoZoneMatch, SendError
from dailyhi.mailer import MessageBody
from dailyhi.store import SubscriptionStore
from dailyhi.timezones import (DELIVERY_HOUR, as_utc, buckets_for, local_time,
                               timezone_identifier_for)

logger = logging.getLogger(__name__)


@dataclass
class BucketResult:
    offset: int
    zone: Optional[str] = None
    local_time: Optional[datetime] = None
    attempted: int = 0
    sent: int = 0
    failed: int = 0
    skipped: int = 0
    reason: Optional[str] = None
    failures: List[tuple] = field(default_factory=list)

    def to_dict(self):
        return {
            'offset': self.offset,
            'zone': self.zone,
            'local_time': self.local_time.isoformat() if self.local_time else None,
            'attempted': self.attempted,
            'sent': self.sent,
            'failed': self.failed,
            'skipped': self.skipped,
            'reason': self.reason,
            'failures': [{'email': email, 'error': error} for email, error in self.failures],
        }


@dataclass
class DeliveryReport:
    utc_time: datetime
    buckets: List[BucketResult] = field(default_factory=list)

    @property
    def offset(self):
        return self.buckets[0].offset if self.buckets else None

    @property
    def local_time(self):
        return self.buckets[0].local_time if self.buckets else None

    @property
    def attempted(self):
        return sum(b.attempted for b in self.buckets)

    @property
    def sent(self):
        return sum(b.sent for b in self.buckets)

    @property
    def failed(self):
        return sum(b.failed for b in self.buckets)

    @property
    def skipped(self):
        return sum(b.skipped for b in self.buckets)

    def to_dict(self):
        return {
            'utc_time': self.utc_time.isoformat(),
            'offset': self.offset,
            'local_time': self.local_time.isoformat() if self.local_time else None,
            'attempted': self.attempted,
            'sent': self.sent,
            'failed': self.failed,
            'skipped': self.skipped,
            'buckets': [b.to_dict() for b in self.buckets],
        }


def digest_subject(when):
    return f"Good morning, today is {when:%A}!"


def render_digest(subscription, when, photo, fact):
    """Render the HTML digest; needs an application context."""
    html = render_template(
        'email/digest.html',
        subscription=subscription,
        time=when,
        photo=photo,
        fact=fact,
        hostname=current_app.config['HOSTNAME'],
    )
    return MessageBody(html=html)


class DeliveryScheduler:
    def __init__(self, store, mailer, content, render=render_digest,
                 delivery_hour=DELIVERY_HOUR, workers=4, batch_size=100,
                 send_timeout=30.0, content_timeout=20.0):
        self.store = store
        self.mailer = mailer
        self.content = content
        self.render = render
        self.delivery_hour = delivery_hour
        self.workers = workers
        self.batch_size = batch_size
        self.send_timeout = send_timeout
        self.content_timeout = content_timeout

    @classmethod
    def from_app(cls, app):
        config = app.config
        return cls(
            store=SubscriptionStore(batch_size=config['DELIVERY_BATCH_SIZE']),
            mailer=app.extensions['dailyhi.mailer'],
            content=app.extensions['dailyhi.content'],
            delivery_hour=config['DELIVERY_HOUR'],
            workers=config['DISPATCH_WORKERS'],
            batch_size=config['DELIVERY_BATCH_SIZE'],
            send_timeout=config['SEND_TIMEOUT_SECONDS'],
            content_timeout=config['CONTENT_TIMEOUT_SECONDS'],
        )

    def run_once(self, utc_time=None):
        """Deliver today's digest to every bucket whose local hour is the delivery hour."""
        utc_time = as_utc(utc_time)
        report = DeliveryReport(utc_time=utc_time)

        # Sends still in flight after their timeout are left to finish on their own
        pool = ThreadPoolExecutor(max_workers=self.workers)
        try:
            for offset in buckets_for(utc_time, self.delivery_hour):
                report.buckets.append(self._deliver_bucket(pool, utc_time, offset))
        finally:
            pool.shutdown(wait=False)

        self.store.commit()
        logger.info(
            f"📬 Delivery at {utc_time:%Y-%m-%d %H:%M} UTC (offset {report.offset:+d}): "
            f"attempted={report.attempted} sent={report.sent} "
            f"failed={report.failed} skipped={report.skipped}"
        )
        return report

    def _deliver_bucket(self, pool, utc_time, offset):
        result = BucketResult(offset=offset)

        zone = timezone_identifier_for(offset, utc_time)
        if zone is None:
            result.reason = str(NoZoneMatch(f"no timezone has offset {offset:+d}"))
            logger.info(f"Skipping offset {offset:+d}: {result.reason}")
            return result

        when = local_time(utc_time, zone)
        result.zone = zone
        result.local_time = when
        logger.info(f"🕕 Serving offset {offset:+d} ({zone}), local time {when:%Y-%m-%d %H:%M}")

        photo = self._fetch(pool, self.content.find_photo, when, 'photo')
        fact = self._fetch(pool, self.content.fun_fact, when, 'fact')
        subject = digest_subject(when)
        today = when.date()

        batch = []
        for subscription in self.store.find_verified_by_offset(offset):
            if not subscription.verified or subscription.timezone != offset:
                logger.warning(f"Store returned ineligible subscription {subscription.id}; ignoring")
                continue
            if subscription.already_sent_on(today):
                result.skipped += 1
                continue

            result.attempted += 1
            try:
                body = self.render(subscription, when, photo, fact)
            except Exception as e:
                logger.error(f"❌ Could not render digest for {subscription.email}: {e}")
                result.failed += 1
                result.failures.append((subscription.email, str(e)))
                continue

            batch.append((subscription, body))
            if len(batch) >= self.batch_size:
                self._dispatch(pool, batch, subject, today, result)
                batch = []

        if batch:
            self._dispatch(pool, batch, subject, today, result)
        return result

    def _fetch(self, pool, fetch, when, label):
        future = pool.submit(fetch, when)
        try:
            return future.result(timeout=self.content_timeout)
        except Exception as e:
            logger.warning(f"Content unavailable ({label}): {e!r}")
            return None

    def _dispatch(self, pool, batch, subject, today, result):
        futures = [
            (subscription, pool.submit(self.mailer.send, subscription.email, subject, body))
            for subscription, body in batch
        ]
        for subscription, future in futures:
            try:
                future.result(timeout=self.send_timeout)
            except FutureTimeout:
                if future.cancel():
                    self._record_failure(result, subscription, SendError("timed out before sending"))
                    continue
                # Still in flight and may yet be delivered: not retried today
                self.store.mark_sent(subscription, today)
                future.add_done_callback(
                    lambda f, email=subscription.email: self._log_late_send(email, f))
                self._record_failure(
                    result, subscription,
                    SendError(f"no answer after {self.send_timeout}s; not retried today"))
            except SendError as e:
                self._record_failure(result, subscription, e)
            except Exception as e:
                self._record_failure(result, subscription, SendError(repr(e)))
            else:
                result.sent += 1
                self.store.mark_sent(subscription, today)

    @staticmethod
    def _log_late_send(email, future):
        if future.cancelled() or future.exception() is not None:
            logger.warning(f"Late send to {email} did not go through")
        else:
            logger.info(f"Late send to {email} completed")

    @staticmethod
    def _record_failure(result, subscription, error):
        logger.error(f"❌ Dispatch to {subscription.email} failed: {error}")
        result.failed += 1
        result.failures.append((subscription.email, str(error)))
