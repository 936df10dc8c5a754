""" Errors raised by update-dns and the exit codes they map to """


class UpdateDnsError(Exception):
    """Base class for all update-dns failures."""

    exit_code = 2


class ConfigError(UpdateDnsError):
    """Missing or invalid configuration, nothing has been sent."""

    exit_code = 2


class RecordParseError(UpdateDnsError):
    """The record text does not match the declared type."""

    exit_code = 1


class ZoneDiscoveryError(UpdateDnsError):
    """The zone enclosing the record could not be determined."""

    exit_code = 2


class UpdateError(UpdateDnsError):
    """The update was not delivered or the server refused it."""

    exit_code = 1
