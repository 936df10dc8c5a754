""" Shared fixtures: a fake DNS server in place of dns.query """

import logging

import dns.flags
import dns.message
import dns.query
import dns.rcode
import dns.rrset
import pytest

from update_dns.config import Config

TSIG_NAME = "update-key."
TSIG_SECRET = "uex007clg4aZngiJLBYdVg=="
SERVER = "192.0.2.53"

SETTINGS = (
    "SERVER",
    "TSIG_NAME",
    "TSIG_SECRET",
    "TSIG_ALGORITHM",
    "ZONE",
    "DEBUG",
    "SIGN_QUERY",
    "TIMEOUT",
)


def soa(zone):
    """SOA rrset owned by zone."""
    return dns.rrset.from_text(
        zone,
        3600,
        "IN",
        "SOA",
        f"ns1.{zone} hostmaster.{zone} 2024010101 7200 3600 1209600 3600",
    )


def reply(query, rcode=dns.rcode.NOERROR, authority=(), answer=()):
    """Build the server's reply to query."""
    response = dns.message.Message(id=query.id)
    response.flags = dns.flags.QR
    response.set_rcode(rcode)
    response.answer.extend(answer)
    response.authority.extend(authority)
    return response


class FakeServer:
    """Stands in for dns.query.udp_with_fallback and records every exchange.

    Queued replies are used in order; each is a callable taking the query
    and returning the response, or an exception to raise. With nothing
    queued the server answers NOERROR.
    """

    def __init__(self):
        self.calls = []
        self.replies = []
        self.used_tcp = False

    @property
    def messages(self):
        return [call["message"] for call in self.calls]

    def queue(self, *replies):
        self.replies.extend(replies)

    def __call__(self, q, where, timeout=None, port=53, **kwargs):
        self.calls.append({"message": q, "where": where, "port": port, "timeout": timeout})
        handler = self.replies.pop(0) if self.replies else reply
        if isinstance(handler, Exception):
            raise handler
        return handler(q), self.used_tcp


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch, tmp_path):
    """Keep the real home directory and environment out of config loading."""
    monkeypatch.setenv("HOME", str(tmp_path))
    for name in SETTINGS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def restore_log_level():
    """--debug raises the root logger level, put it back after each test."""
    root = logging.getLogger()
    level = root.level
    yield
    root.setLevel(level)


@pytest.fixture
def fake_server(monkeypatch):
    server = FakeServer()
    monkeypatch.setattr(dns.query, "udp_with_fallback", server)
    return server


@pytest.fixture
def config():
    return Config(server=SERVER, tsig_name=TSIG_NAME, tsig_secret=TSIG_SECRET)
