"""Error types raised and reported by the Daily Hi."""


class DailyHiError(Exception):
    """Base class for all application errors."""


class InvalidEmail(DailyHiError):
    """Address could not be parsed, has no domain, or the domain has no MX records."""

    def __init__(self, email, reason):
        super().__init__(f"Invalid email {email!r}: {reason}")
        self.email = email
        self.reason = reason


class DuplicateKey(DailyHiError):
    """A subscription with the same email or code already exists."""

    def __init__(self, field, value):
        super().__init__(f"Duplicate {field}: {value}")
        self.field = field
        self.value = value


class InvalidTimezone(DailyHiError):
    """Timezone offset outside -12..+14 or not an integer."""


class UnknownCode(DailyHiError):
    """No subscription matches the given verification code."""


class SendError(DailyHiError):
    """A mailer failed to hand a message to its transport."""


class ContentUnavailable(DailyHiError):
    """Photo or fact could not be fetched."""


class NoZoneMatch(DailyHiError):
    """No timezone in the tz database currently has the requested offset."""


class NotPending(DailyHiError):
    """No unverified subscription exists for the given email."""
