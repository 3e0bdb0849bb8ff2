# dailyhi/validation.py
"""Email normalization and deliverability checks used at signup."""

import logging
from email.utils import getaddresses

import dns.exception
import dns.resolver
from email_validator import validate_email, EmailNotValidError

from dailyhi.errors import InvalidEmail

logger = logging.getLogger(__name__)


class DNSResolver:
    """Looks up MX records with dnspython."""

    def __init__(self, timeout=5.0):
        self.timeout = timeout
        self._resolver = None

    @property
    def resolver(self):
        # /etc/resolv.conf is read on first use, not at import
        if self._resolver is None:
            self._resolver = dns.resolver.Resolver()
            self._resolver.lifetime = self.timeout
        return self._resolver

    def lookup_mx(self, domain):
        """Return MX hostnames for domain, sorted by preference."""
        answers = self.resolver.resolve(domain, 'MX')
        records = sorted(answers, key=lambda r: r.preference)
        return [str(r.exchange).rstrip('.') for r in records]


class EmailValidator:
    """Normalizes an address and confirms its domain accepts mail."""

    def __init__(self, resolver=None):
        self.resolver = resolver or DNSResolver()

    @staticmethod
    def normalize(raw):
        """Parse raw as exactly one address and return it lowercased.

        Display names are dropped, so ``"Jo <Jo@Example.com>"`` becomes
        ``"jo@example.com"``.
        """
        if not raw or not raw.strip():
            raise InvalidEmail(raw, 'empty')

        addresses = [addr for _, addr in getaddresses([raw]) if addr]
        if len(addresses) != 1:
            raise InvalidEmail(raw, 'expected exactly one address')

        try:
            validated = validate_email(addresses[0], check_deliverability=False)
        except EmailNotValidError as e:
            raise InvalidEmail(raw, str(e)) from e

        email = validated.normalized.lower()
        if not email.rpartition('@')[2]:
            raise InvalidEmail(raw, 'missing domain')
        return email

    def validate(self, raw):
        """Return the normalized address or raise InvalidEmail.

        Resolver failures count as "no MX records".
        """
        email = self.normalize(raw)
        domain = email.rpartition('@')[2]

        try:
            mx_records = list(self.resolver.lookup_mx(domain))
        except (dns.exception.DNSException, OSError) as e:
            logger.info(f"MX lookup failed for {domain}: {e}")
            raise InvalidEmail(raw, f"MX lookup failed for {domain}") from e

        if not mx_records:
            raise InvalidEmail(raw, f"no MX records for {domain}")

        return email
