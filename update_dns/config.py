""" Configuration for update-dns """

import logging
import os
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Tuple

import dns.exception
import dns.name
import dns.tsig
import dns.tsigkeyring
import yaml
from get_docker_secret import get_docker_secret

from .errors import ConfigError

logger = logging.getLogger("CONFIG")

DEFAULT_CONFIG_PATH = os.path.join("~", ".update-dns", "update-dns.yaml")
DEFAULT_PORT = 53
DEFAULT_ALGORITHM = "hmac-sha256"

TSIG_ALGORITHMS = {
    "hmac-md5": dns.tsig.HMAC_MD5,
    "hmac-md5.sig-alg.reg.int": dns.tsig.HMAC_MD5,
    "hmac-sha1": dns.tsig.HMAC_SHA1,
    "hmac-sha224": dns.tsig.HMAC_SHA224,
    "hmac-sha256": dns.tsig.HMAC_SHA256,
    "hmac-sha384": dns.tsig.HMAC_SHA384,
    "hmac-sha512": dns.tsig.HMAC_SHA512,
}

TRUE_VALUES = ("true", "yes", "on", "1")
FALSE_VALUES = ("false", "no", "off", "0", "")


@dataclass(frozen=True)
class Config:
    """Settings for one update-dns run, fixed once loaded."""

    server: str
    tsig_name: str
    tsig_secret: str
    tsig_algorithm: str = DEFAULT_ALGORITHM
    zone: Optional[str] = None
    debug: bool = False
    sign_query: bool = False
    timeout: Optional[float] = None

    @property
    def host(self) -> str:
        return split_server(self.server)[0]

    @property
    def port(self) -> int:
        return split_server(self.server)[1]

    @property
    def algorithm(self) -> dns.name.Name:
        """TSIG algorithm as a dnspython name."""
        return tsig_algorithm(self.tsig_algorithm)


def split_server(server: str) -> Tuple[str, int]:
    """Split host[:port] or [ipv6]:port, port defaulting to 53."""
    host, port = server, None
    if server.startswith("["):
        host, _, tail = server[1:].partition("]")
        if tail:
            if not tail.startswith(":"):
                raise ConfigError(f"Invalid server address {server!r}")
            port = tail[1:]
    elif server.count(":") == 1:
        host, port = server.split(":")

    if not host:
        raise ConfigError(f"Invalid server address {server!r}")
    if port is None:
        return host, DEFAULT_PORT

    try:
        port_number = int(port)
    except ValueError as e:
        raise ConfigError(f"Invalid server port {port!r}") from e
    if not 0 < port_number < 65536:
        raise ConfigError(f"Server port {port_number} out of range")
    return host, port_number


def tsig_algorithm(text: str) -> dns.name.Name:
    """Map an algorithm name such as HMAC-SHA256 to its dnspython constant."""
    try:
        return TSIG_ALGORITHMS[text.strip().lower().rstrip(".")]
    except KeyError as e:
        raise ConfigError(f"Unsupported tsig-algorithm {text!r}") from e


def read_config_file(path: str, required: bool = False) -> dict:
    """Read the YAML config file, an absent optional file reads as empty."""
    path = os.path.expanduser(path)
    if not os.path.exists(path):
        if required:
            raise ConfigError(f"Fatal error reading config file: {path} not found")
        logger.debug("no config file at %s", path)
        return {}

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Fatal error reading config file: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")
    logger.debug("read config file %s", path)
    return data


def _setting(
    key: str, file_values: Mapping[str, Any], overrides: Mapping[str, Any], default=None
):
    """Look a key up in the flags, the config file, then docker secrets/env."""
    value = overrides.get(key)
    if value is not None:
        return value
    value = file_values.get(key)
    if value is not None:
        return value
    # tsig-secret -> /run/secrets/tsig_secret or $TSIG_SECRET
    return get_docker_secret(key.replace("-", "_").upper(), default)


def _to_bool(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in TRUE_VALUES:
        return True
    if text in FALSE_VALUES:
        return False
    raise ConfigError(f"Invalid boolean for {key}: {value!r}")


def _to_timeout(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        timeout = float(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid timeout {value!r}") from e
    if timeout <= 0:
        raise ConfigError(f"Timeout must be positive, got {value!r}")
    return timeout


def load_config(path: Optional[str] = None, overrides: Optional[Mapping[str, Any]] = None) -> Config:
    """Build the validated Config.

    Flags in overrides win over the config file, which wins over docker
    secrets and environment variables. An explicit path must exist; the
    default path is optional.
    """
    overrides = overrides or {}
    file_values = read_config_file(path or DEFAULT_CONFIG_PATH, required=path is not None)

    server = str(_setting("server", file_values, overrides, "")).strip()
    tsig_secret = str(_setting("tsig-secret", file_values, overrides, "")).strip()
    tsig_name = str(_setting("tsig-name", file_values, overrides, "")).strip()

    # Check required settings
    if not server:
        raise ConfigError("Missing server name")
    if not tsig_secret:
        raise ConfigError("Missing tsig-secret")
    if not tsig_name:
        raise ConfigError("Missing tsig-name")

    split_server(server)
    algorithm = str(_setting("tsig-algorithm", file_values, overrides, DEFAULT_ALGORITHM))
    tsig_algorithm(algorithm)

    try:
        dns.tsigkeyring.from_text({tsig_name: tsig_secret})
    except (dns.exception.DNSException, ValueError) as e:
        raise ConfigError(f"Invalid TSIG key {tsig_name}: {e}") from e

    zone = _setting("zone", file_values, overrides)
    zone = str(zone).strip() if zone is not None else None
    if zone:
        try:
            dns.name.from_text(zone)
        except dns.exception.DNSException as e:
            raise ConfigError(f"Invalid zone {zone!r}: {e}") from e
    else:
        zone = None

    return Config(
        server=server,
        tsig_name=tsig_name,
        tsig_secret=tsig_secret,
        tsig_algorithm=algorithm,
        zone=zone,
        debug=_to_bool("debug", _setting("debug", file_values, overrides, False)),
        sign_query=_to_bool("sign-query", _setting("sign-query", file_values, overrides, False)),
        timeout=_to_timeout(_setting("timeout", file_values, overrides)),
    )
