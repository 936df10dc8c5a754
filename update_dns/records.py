""" Resource records and the record syntax accepted on the command line """

import enum
from dataclasses import dataclass
from typing import Optional, Tuple

import dns.exception
import dns.name
import dns.rdata
import dns.rdataclass
import dns.rdatatype
import dns.reversename
import dns.ttl

from .errors import RecordParseError

DEFAULT_TTL = 3600

ADDRESS_TYPES = (dns.rdatatype.A, dns.rdatatype.AAAA)


class Mode(enum.Enum):
    """How a record is applied to its zone."""

    REPLACE = "replace"
    ADD = "add"
    DELETE_TYPE = "delete-type"
    DELETE_NAME = "delete-name"

    @property
    def removes(self) -> bool:
        """True if the transaction deletes existing records."""
        return self is not Mode.ADD

    @property
    def inserts(self) -> bool:
        """True if the transaction adds the record."""
        return self in (Mode.REPLACE, Mode.ADD)


@dataclass(frozen=True)
class Record:
    """A single resource record, ready to be put in an update message.

    rdata is None for a typed delete given without a value and for the
    wildcard record used to delete a whole name.
    """

    name: dns.name.Name
    ttl: int
    rdclass: dns.rdataclass.RdataClass
    rdtype: dns.rdatatype.RdataType
    rdata: Optional[dns.rdata.Rdata] = None

    @classmethod
    def wildcard(cls, name: dns.name.Name) -> "Record":
        """Name-only record matching every type at name."""
        return cls(name, 0, dns.rdataclass.ANY, dns.rdatatype.ANY)

    @property
    def has_address(self) -> bool:
        """True for an A or AAAA record carrying an address."""
        return self.rdtype in ADDRESS_TYPES and self.rdata is not None

    def reverse(self) -> "Record":
        """Return the PTR record mapping this record's address back to its name."""
        if not self.has_address:
            raise ValueError(f"{self.to_text()} has no address to reverse")
        ptr_name = dns.reversename.from_address(self.rdata.address)
        rdata = dns.rdata.from_text(
            dns.rdataclass.IN, dns.rdatatype.PTR, self.name.to_text()
        )
        return Record(ptr_name, self.ttl, dns.rdataclass.IN, dns.rdatatype.PTR, rdata)

    @classmethod
    def reverse_delete(cls, address: str) -> "Record":
        """Typed PTR record at the reverse name of address, for deleting it."""
        return cls(
            dns.reversename.from_address(address),
            0,
            dns.rdataclass.IN,
            dns.rdatatype.PTR,
        )

    def to_text(self) -> str:
        """Zone file representation."""
        parts = [
            self.name.to_text(),
            str(self.ttl),
            dns.rdataclass.to_text(self.rdclass),
            dns.rdatatype.to_text(self.rdtype),
        ]
        if self.rdata is not None:
            parts.append(self.rdata.to_text())
        return " ".join(parts)

    def __str__(self) -> str:
        return self.to_text()


def _next_token(text: str) -> Tuple[str, str]:
    """Split off the first whitespace separated token."""
    fields = text.split(None, 1)
    if not fields:
        return "", ""
    if len(fields) == 1:
        return fields[0], ""
    return fields[0], fields[1]


def _is_class(token: str) -> bool:
    """True if token names a data class (IN, CH, HS), not ANY or NONE."""
    try:
        rdclass = dns.rdataclass.from_text(token)
    except dns.rdataclass.UnknownRdataclass:
        return False
    return not dns.rdataclass.is_metaclass(rdclass)


def parse_name(text: str) -> dns.name.Name:
    """Parse a record name, making it absolute."""
    try:
        return dns.name.from_text(text, origin=dns.name.root)
    except dns.exception.DNSException as e:
        raise RecordParseError(f"Invalid record name {text!r}: {e}") from e


def parse_record(text: str) -> Record:
    """Parse '<name> [ttl] [class] <type> [value...]' into a Record.

    The value is everything after the type and is handed to dnspython's
    rdata parser, so quoted TXT strings and multi-field types such as MX or
    SRV work as they do in a zone file. A type given without a value yields
    a Record without rdata.
    """
    token, rest = _next_token(text)
    if not token:
        raise RecordParseError("Missing record name")
    name = parse_name(token)

    ttl = DEFAULT_TTL
    token, rest = _next_token(rest)
    if token[:1].isdigit():
        try:
            ttl = dns.ttl.from_text(token)
        except dns.ttl.BadTTL as e:
            raise RecordParseError(f"Invalid TTL {token!r}: {e}") from e
        token, rest = _next_token(rest)

    rdclass = dns.rdataclass.IN
    if token and _is_class(token):
        if dns.rdataclass.from_text(token) != dns.rdataclass.IN:
            raise RecordParseError(f"Unsupported record class {token}")
        token, rest = _next_token(rest)

    if not token:
        raise RecordParseError(f"Missing record type for {name}")
    try:
        rdtype = dns.rdatatype.from_text(token)
    except dns.rdatatype.UnknownRdatatype as e:
        raise RecordParseError(f"Unknown record type {token!r}") from e

    value = rest.strip()
    if not value:
        return Record(name, ttl, rdclass, rdtype)

    try:
        rdata = dns.rdata.from_text(
            rdclass, rdtype, value, origin=dns.name.root, relativize=False
        )
    except (dns.exception.DNSException, ValueError) as e:
        raise RecordParseError(
            f"Invalid {dns.rdatatype.to_text(rdtype)} value {value!r}: {e}"
        ) from e
    return Record(name, ttl, rdclass, rdtype, rdata)
