""" Configuration files, environment fallback and validation """

import dns.tsig
import pytest
import yaml

from update_dns.config import Config, load_config, split_server, tsig_algorithm
from update_dns.errors import ConfigError

from .conftest import TSIG_NAME, TSIG_SECRET


def write_config(path, **values):
    path.write_text(yaml.safe_dump(values), encoding="utf-8")
    return str(path)


@pytest.fixture
def config_file(tmp_path):
    return write_config(
        tmp_path / "update-dns.yaml",
        **{"server": "ns1.example.org:5353", "tsig-name": TSIG_NAME, "tsig-secret": TSIG_SECRET},
    )


def test_load_from_file(config_file):
    config = load_config(config_file)
    assert config == Config(
        server="ns1.example.org:5353", tsig_name=TSIG_NAME, tsig_secret=TSIG_SECRET
    )
    assert config.host == "ns1.example.org"
    assert config.port == 5353
    assert config.algorithm == dns.tsig.HMAC_SHA256
    assert config.zone is None
    assert not config.debug
    assert config.timeout is None


def test_default_path_is_read(tmp_path):
    (tmp_path / ".update-dns").mkdir()
    write_config(
        tmp_path / ".update-dns" / "update-dns.yaml",
        **{"server": "192.0.2.53", "tsig-name": TSIG_NAME, "tsig-secret": TSIG_SECRET},
    )
    assert load_config().server == "192.0.2.53"


def test_flags_override_file(config_file):
    config = load_config(
        config_file, {"server": "192.0.2.1", "zone": "example.org", "debug": True}
    )
    assert config.server == "192.0.2.1"
    assert config.zone == "example.org"
    assert config.debug


def test_environment_fills_gaps(tmp_path, monkeypatch):
    path = write_config(tmp_path / "partial.yaml", server="192.0.2.53")
    monkeypatch.setenv("TSIG_NAME", TSIG_NAME)
    monkeypatch.setenv("TSIG_SECRET", TSIG_SECRET)
    monkeypatch.setenv("DEBUG", "yes")
    monkeypatch.setenv("TIMEOUT", "2.5")
    config = load_config(path)
    assert config.tsig_secret == TSIG_SECRET
    assert config.debug is True
    assert config.timeout == 2.5


def test_file_wins_over_environment(config_file, monkeypatch):
    monkeypatch.setenv("SERVER", "198.51.100.1")
    assert load_config(config_file).server == "ns1.example.org:5353"


def test_missing_default_file_uses_environment(monkeypatch):
    monkeypatch.setenv("SERVER", "192.0.2.53")
    monkeypatch.setenv("TSIG_NAME", TSIG_NAME)
    monkeypatch.setenv("TSIG_SECRET", TSIG_SECRET)
    assert load_config().server == "192.0.2.53"


def test_explicit_file_must_exist(tmp_path):
    with pytest.raises(ConfigError, match="not found"):
        load_config(str(tmp_path / "nope.yaml"))


def test_file_must_be_a_mapping(tmp_path):
    path = tmp_path / "list.yaml"
    path.write_text("- server\n- tsig-name\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="mapping"):
        load_config(str(path))


def test_broken_yaml(tmp_path):
    path = tmp_path / "broken.yaml"
    path.write_text("server: [unclosed\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(str(path))


@pytest.mark.parametrize(
    "missing, message",
    [
        ("server", "Missing server name"),
        ("tsig-secret", "Missing tsig-secret"),
        ("tsig-name", "Missing tsig-name"),
    ],
)
def test_required_settings(tmp_path, missing, message):
    values = {"server": "192.0.2.53", "tsig-name": TSIG_NAME, "tsig-secret": TSIG_SECRET}
    del values[missing]
    path = write_config(tmp_path / "config.yaml", **values)
    with pytest.raises(ConfigError, match=message):
        load_config(path)


def test_bad_secret(tmp_path):
    path = write_config(
        tmp_path / "config.yaml",
        **{"server": "192.0.2.53", "tsig-name": TSIG_NAME, "tsig-secret": "abc"},
    )
    with pytest.raises(ConfigError, match="Invalid TSIG key"):
        load_config(path)


@pytest.mark.parametrize(
    "setting, value",
    [
        ("tsig-algorithm", "hmac-sha3"),
        ("debug", "maybe"),
        ("timeout", "soon"),
        ("timeout", -1),
        ("zone", "bad..zone"),
        ("server", "192.0.2.53:dns"),
    ],
)
def test_invalid_settings(tmp_path, setting, value):
    values = {"server": "192.0.2.53", "tsig-name": TSIG_NAME, "tsig-secret": TSIG_SECRET}
    values[setting] = value
    path = write_config(tmp_path / "config.yaml", **values)
    with pytest.raises(ConfigError):
        load_config(path)


@pytest.mark.parametrize(
    "server, expected",
    [
        ("192.0.2.53", ("192.0.2.53", 53)),
        ("192.0.2.53:5353", ("192.0.2.53", 5353)),
        ("ns1.example.org:53", ("ns1.example.org", 53)),
        ("2001:db8::53", ("2001:db8::53", 53)),
        ("[2001:db8::53]:5300", ("2001:db8::53", 5300)),
        ("[2001:db8::53]", ("2001:db8::53", 53)),
    ],
)
def test_split_server(server, expected):
    assert split_server(server) == expected


@pytest.mark.parametrize("server", [":53", "192.0.2.53:0", "192.0.2.53:70000", "[2001:db8::53]x"])
def test_split_server_rejects(server):
    with pytest.raises(ConfigError):
        split_server(server)


def test_algorithm_names():
    assert tsig_algorithm("HMAC-SHA512") == dns.tsig.HMAC_SHA512
    assert tsig_algorithm("hmac-md5") == dns.tsig.HMAC_MD5
    assert tsig_algorithm("hmac-sha1.") == dns.tsig.HMAC_SHA1
