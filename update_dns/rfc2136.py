""" RFC2136 client """

import logging
import socket
from typing import List, Optional, Sequence, Union

import dns.exception
import dns.inet
import dns.message
import dns.name
import dns.query
import dns.rcode
import dns.rdatatype
import dns.resolver
import dns.tsig
import dns.tsigkeyring
import dns.update

from .config import Config
from .errors import UpdateError, ZoneDiscoveryError
from .records import ADDRESS_TYPES, Mode, Record

TSIG_FUDGE = 300
EDNS_PAYLOAD = 4096

# What dns.query can raise for a failed exchange
TRANSPORT_ERRORS = (dns.exception.DNSException, OSError, EOFError)


def build_update(
    record: Record, zone: dns.name.Name, mode: Mode
) -> dns.update.UpdateMessage:
    """Build the unsigned update transaction applying record to zone."""
    update = dns.update.UpdateMessage(zone)

    if mode is Mode.DELETE_NAME:
        update.delete(record.name)
        return update

    if mode.inserts and record.rdata is None:
        raise UpdateError(
            f"No value to add for {record.name} {dns.rdatatype.to_text(record.rdtype)}"
        )
    if mode.removes:
        update.delete(record.name, record.rdtype)
    if mode.inserts:
        update.add(record.name, record.ttl, record.rdata)
    return update


class Ddns:
    """RFC 2136 compliant dynamic DNS client."""

    def __init__(
        self,
        server: str,
        port: int,
        key_name: str,
        key_secret: str,
        key_algorithm: dns.name.Name = dns.tsig.HMAC_SHA256,
        sign_query: bool = False,
        timeout: Optional[float] = None,
    ) -> None:
        """Initializes the DDNS client with the given parameters."""
        self.server = server
        self.port = port
        self.key_name = dns.name.from_text(key_name)
        self.keyring = dns.tsigkeyring.from_text({key_name: key_secret})
        self.algorithm = key_algorithm
        self.sign_query = sign_query
        self._default_timeout = timeout
        self._address = None
        self.logger = logging.getLogger("RFC2136")

    @classmethod
    def from_config(cls, config: Config) -> "Ddns":
        """Create a client for the server and key in config."""
        return cls(
            config.host,
            config.port,
            config.tsig_name,
            config.tsig_secret,
            config.algorithm,
            sign_query=config.sign_query,
            timeout=config.timeout,
        )

    @property
    def address(self) -> str:
        """Server IP address, a host name is resolved on first use."""
        if self._address is None:
            if dns.inet.is_address(self.server):
                self._address = self.server
            else:
                answer = dns.resolver.resolve_name(self.server)
                # IPv4 first, dnspython lists AAAA before A
                addresses = list(answer.addresses(socket.AF_INET)) or list(
                    answer.addresses()
                )
                self._address = addresses[0]
                self.logger.debug("resolved %s to %s", self.server, self._address)
        return self._address

    def __str__(self) -> str:
        if ":" in self.server:
            return f"[{self.server}]:{self.port}"
        return f"{self.server}:{self.port}"

    def _sign(self, message: dns.message.Message) -> None:
        """Attach the TSIG key, the signature is computed when the message is sent."""
        message.use_tsig(
            self.keyring,
            keyname=self.key_name,
            fudge=TSIG_FUDGE,
            algorithm=self.algorithm,
        )

    def _exchange(self, message: dns.message.Message) -> dns.message.Message:
        """Send a message over UDP, falling back to TCP on truncation."""
        response, used_tcp = dns.query.udp_with_fallback(
            message, self.address, timeout=self._default_timeout, port=self.port
        )
        if used_tcp:
            self.logger.debug("UDP reply from %s truncated, retried over TCP", self)
        return response

    def resolve_zone(
        self, record_name: Union[dns.name.Name, str], zone: Optional[str] = None
    ) -> dns.name.Name:
        """Return the zone enclosing record_name.

        An explicit zone is returned as is, made absolute. Otherwise the
        server is asked for the SOA of record_name and the owner of the first
        SOA in the authority section is the zone.
        """
        if zone:
            zone_name = dns.name.from_text(zone)
            self.logger.info("Using configured zone: %s", zone_name)
            return zone_name

        query = dns.message.make_query(
            record_name,
            dns.rdatatype.SOA,
            use_edns=0,
            want_dnssec=True,
            payload=EDNS_PAYLOAD,
        )
        if self.sign_query:
            self._sign(query)

        try:
            response = self._exchange(query)
        except TRANSPORT_ERRORS as e:
            raise ZoneDiscoveryError(f"Unable to discover zone: {e}") from e

        for rrset in response.authority:
            if rrset.rdtype == dns.rdatatype.SOA:
                self.logger.info("Got zone: %s", rrset.name)
                return rrset.name

        raise ZoneDiscoveryError(f"Couldn't find a zone for {record_name}")

    def lookup_addresses(
        self, name: dns.name.Name, rdtypes: Sequence[int] = ADDRESS_TYPES
    ) -> List[str]:
        """Return the addresses the server holds at name for each of rdtypes."""
        addresses = []
        for rdtype in rdtypes:
            query = dns.message.make_query(
                name, rdtype, use_edns=0, payload=EDNS_PAYLOAD
            )
            if self.sign_query:
                self._sign(query)
            try:
                response = self._exchange(query)
            except TRANSPORT_ERRORS as e:
                raise UpdateError(f"Unable to look up {name}: {e}") from e
            for rrset in response.answer:
                if rrset.rdtype == rdtype and rrset.name == name:
                    addresses.extend(rdata.address for rdata in rrset)
        self.logger.debug("addresses of %s: %s", name, addresses)
        return addresses

    def submit_update(self, record: Record, zone: dns.name.Name, mode: Mode) -> None:
        """Send a signed update for record and check the response code."""
        update = build_update(record, zone, mode)
        self._sign(update)

        self.logger.info("Sending update to %s:\n%s", self, update.to_text())

        try:
            response = self._exchange(update)
        except TRANSPORT_ERRORS as e:
            raise UpdateError(f"Unable to send update: {e}") from e

        rcode = response.rcode()
        if rcode != dns.rcode.NOERROR:
            raise UpdateError(
                f"Server refused registration. Code: {dns.rcode.to_text(rcode)}"
            )
        self.logger.info("DNS Update successful for %s in %s", record.name, zone)


def resolve_zone(record_name: Union[dns.name.Name, str], config: Config) -> dns.name.Name:
    """Find the zone for record_name using the server in config."""
    return Ddns.from_config(config).resolve_zone(record_name, config.zone)


def submit_update(record: Record, zone: dns.name.Name, mode: Mode, config: Config) -> None:
    """Apply record to zone on the server in config."""
    Ddns.from_config(config).submit_update(record, zone, mode)

