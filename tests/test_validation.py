from types import SimpleNamespace

import dns.resolver
import pytest

from dailyhi.errors import InvalidEmail
from dailyhi.validation import DNSResolver, EmailValidator


@pytest.fixture
def validator(resolver):
    return EmailValidator(resolver)


def test_valid_address_is_lowercased(validator):
    assert validator.validate("MiXeD.Case@GMAIL.com") == "mixed.case@gmail.com"


def test_display_name_is_dropped(validator):
    assert validator.validate("Jo Hi <Jo@DailyHi.com>") == "jo@dailyhi.com"


def test_validation_is_idempotent(validator):
    first = validator.validate("  Someone@FastMail.fm ")
    assert validator.validate(first) == first


def test_mx_lookup_uses_domain(validator, resolver):
    validator.validate("someone@gmail.com")
    assert resolver.lookups == ["gmail.com"]


def test_domain_without_mx_is_invalid(validator):
    with pytest.raises(InvalidEmail) as exc:
        validator.validate("someone@no-mail-here.org")
    assert "no MX" in exc.value.reason


def test_resolver_error_is_invalid(stub_resolver):
    validator = EmailValidator(stub_resolver(error=dns.resolver.NXDOMAIN()))
    with pytest.raises(InvalidEmail):
        validator.validate("someone@gmail.com")


@pytest.mark.parametrize("raw", [
    "",
    "   ",
    "not-an-email",
    "someone@",
    "a@gmail.com, b@gmail.com",
])
def test_unparseable_input_is_invalid(validator, resolver, raw):
    with pytest.raises(InvalidEmail):
        validator.validate(raw)
    assert resolver.lookups == []


def test_dns_resolver_sorts_by_preference():
    answers = [
        SimpleNamespace(preference=20, exchange="backup.example.net."),
        SimpleNamespace(preference=10, exchange="primary.example.net."),
    ]

    class FakeResolver:
        def resolve(self, domain, rdtype):
            assert rdtype == "MX"
            return answers

    resolver = DNSResolver()
    resolver._resolver = FakeResolver()
    assert resolver.lookup_mx("example.net") == ["primary.example.net", "backup.example.net"]
