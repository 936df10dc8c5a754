""" Update a DNS record on its authoritative server with a TSIG signed RFC 2136 update """

import argparse
import logging
from typing import List, Optional, Tuple

import dns.rdatatype

from . import __version__
from .config import DEFAULT_CONFIG_PATH, Config, load_config
from .errors import ConfigError, RecordParseError, UpdateDnsError
from .records import ADDRESS_TYPES, Mode, Record, parse_name, parse_record
from .rfc2136 import Ddns

LOG_FORMAT = "%(asctime)s  %(name)s  %(levelname)s: %(message)s"

logger = logging.getLogger("UPDATE-DNS")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="update-dns",
        description="Add, replace or delete a DNS record using RFC 2136 dynamic updates.",
        epilog=f"Server and TSIG key are read from {DEFAULT_CONFIG_PATH} "
        "(server, tsig-name, tsig-secret), docker secrets or the environment.",
    )
    parser.add_argument(
        "record",
        nargs="+",
        metavar="RECORD",
        help="<name> [ttl] [class] [type] [value...], as in a zone file",
    )
    action = parser.add_mutually_exclusive_group()
    action.add_argument(
        "-a", "--add", action="store_true", help="Add name without removing existing records"
    )
    action.add_argument(
        "-d",
        "--delete",
        action="store_true",
        help="Delete the records of the given type, or every record of name",
    )
    parser.add_argument("-s", "--server", help="Server name")
    parser.add_argument(
        "-z", "--zone", help="Zone to update (will be auto-detected if absent)"
    )
    parser.add_argument(
        "-c", "--config", help=f"Config file (default {DEFAULT_CONFIG_PATH})"
    )
    parser.add_argument(
        "-r",
        "--reverse",
        action="store_true",
        help="Also update, or delete, the PTR records of A and AAAA records",
    )
    parser.add_argument("--debug", action="store_true", help="Log debug output")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser.parse_args(argv)


def build_record(text: str, add: bool = False, delete: bool = False) -> Tuple[Record, Mode]:
    """Parse the record text and pick the update mode from the flags.

    When deleting, text that does not parse as a typed record deletes every
    record at the name instead.
    """
    try:
        record = parse_record(text)
    except RecordParseError as e:
        if not delete:
            raise
        fields = text.split()
        name = parse_name(fields[0])
        if len(fields) > 1:
            logger.warning("Ignoring record data, deleting all records at %s: %s", name, e)
        return Record.wildcard(name), Mode.DELETE_NAME

    if delete:
        return record, Mode.DELETE_TYPE
    if record.rdata is None:
        raise RecordParseError(f"Missing value for {record.to_text()}")
    if add:
        return record, Mode.ADD
    return record, Mode.REPLACE


def run(args: argparse.Namespace, config: Config) -> None:
    """Resolve the zone and send the update, raising UpdateDnsError on failure."""
    text = " ".join(args.record).strip()
    if not text:
        raise ConfigError("Missing record name")

    record, mode = build_record(text, add=args.add, delete=args.delete)
    if args.reverse:
        if not mode.inserts:
            if record.rdtype not in ADDRESS_TYPES + (dns.rdatatype.ANY,):
                raise ConfigError("--reverse can only delete A or AAAA records")
        elif not record.has_address:
            raise ConfigError("--reverse needs an A or AAAA record with an address")

    ddns_client = Ddns.from_config(config)

    # Addresses whose PTR records go away with the deleted records
    addresses = []
    if args.reverse and not mode.inserts:
        if record.rdata is not None:
            addresses = [record.rdata.address]
        elif record.rdtype == dns.rdatatype.ANY:
            addresses = ddns_client.lookup_addresses(record.name)
        else:
            addresses = ddns_client.lookup_addresses(record.name, (record.rdtype,))

    zone = ddns_client.resolve_zone(record.name, config.zone)
    ddns_client.submit_update(record, zone, mode)

    if not args.reverse:
        return
    if mode.inserts:
        ptr = record.reverse()
        logger.info("Updating reverse record %s", ptr)
        reverse_zone = ddns_client.resolve_zone(ptr.name)
        ddns_client.submit_update(ptr, reverse_zone, mode)
    else:
        delete_reverse(ddns_client, addresses)


def delete_reverse(ddns_client: Ddns, addresses: List[str]) -> None:
    """Delete the PTR records of addresses, failures are only logged."""
    if not addresses:
        logger.info("No addresses found, no reverse records to delete")
    for address in addresses:
        ptr = Record.reverse_delete(address)
        logger.info("Deleting reverse record %s", ptr.name)
        try:
            reverse_zone = ddns_client.resolve_zone(ptr.name)
            ddns_client.submit_update(ptr, reverse_zone, Mode.DELETE_TYPE)
        except UpdateDnsError as e:
            logger.warning("Error deleting reverse name %s: %s", ptr.name, e)


def main(argv: Optional[List[str]] = None) -> int:
    """Run one update and return the process exit code."""
    args = parse_args(argv)
    logging.basicConfig(level="DEBUG" if args.debug else "INFO", format=LOG_FORMAT)

    debug = args.debug
    try:
        config = load_config(
            args.config,
            {"server": args.server, "zone": args.zone, "debug": args.debug or None},
        )
        debug = config.debug
        if debug:
            logging.getLogger().setLevel(logging.DEBUG)
        run(args, config)
    except UpdateDnsError as e:
        logger.error("%s", e)
        return e.exit_code
    except Exception as e:  # pylint: disable=broad-except
        # tracebacks only when debugging
        if debug:
            logger.exception("Unexpected error")
        else:
            logger.error("Unexpected error: %s", e)
        return 2

    logger.info("Update successful")
    return 0
