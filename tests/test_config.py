import json

import pytest

from labconf.config import settings
from labconf.config.settings import (
    DEFAULT_CONFIG,
    get_config_value,
    load_config,
    parse_bool,
    resolve_config_path,
    save_config,
    set_config_value,
)
from labconf.services.config_service import ConfigService, assign, lookup


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("LABCONF_CONFIG", "CONFIRM_ALL", "LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(settings, "_config_service", None)


def test_missing_file_means_defaults(tmp_path):
    config = load_config(tmp_path / "absent.json")
    assert config == DEFAULT_CONFIG
    assert config is not DEFAULT_CONFIG


def test_file_is_deep_merged_over_defaults(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"proxy": {"host": "proxy.lab"}, "extra": 1}))

    config = load_config(path)
    assert config["proxy"]["host"] == "proxy.lab"
    assert config["proxy"]["port"] == 3128
    assert config["proxy"]["services"] == ["env", "apt", "git", "ssh", "dconf"]
    assert config["extra"] == 1
    assert DEFAULT_CONFIG["proxy"]["host"] == "squid.cs.wisc.edu"


def test_malformed_json_raises_value_error(tmp_path):
    path = tmp_path / "config.json"
    path.write_text("{not json")
    with pytest.raises(ValueError):
        load_config(path)


def test_non_object_root_raises_value_error(tmp_path):
    path = tmp_path / "config.json"
    path.write_text("[1, 2]")
    with pytest.raises(ValueError):
        load_config(path)


@pytest.mark.parametrize("value, expected", [("true", True), ("1", True), ("YES", True), ("false", False), ("0", False)])
def test_confirm_all_env_override(tmp_path, monkeypatch, value, expected):
    monkeypatch.setenv("CONFIRM_ALL", value)
    config = load_config(tmp_path / "absent.json")
    assert config["script"]["confirm_all"] is expected


def test_log_level_env_override(tmp_path, monkeypatch):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"script": {"log_level": "ERROR"}}))
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")
    assert load_config(path)["script"]["log_level"] == "DEBUG"


def test_resolve_config_path_priority(tmp_path, monkeypatch):
    assert resolve_config_path() == settings.DEFAULT_CONFIG_PATH
    monkeypatch.setenv("LABCONF_CONFIG", str(tmp_path / "env.json"))
    assert resolve_config_path() == tmp_path / "env.json"
    assert resolve_config_path(tmp_path / "explicit.json") == tmp_path / "explicit.json"


def test_save_then_load(tmp_path):
    path = tmp_path / "nested" / "config.json"
    assert save_config({"ssh_server": {"port": 2222}}, path) is True
    assert load_config(path)["ssh_server"]["port"] == 2222


def test_config_service_load_errors(tmp_path):
    service = ConfigService(config_path=tmp_path / "absent.json")
    assert not service.exists()
    with pytest.raises(FileNotFoundError):
        service.load()


def test_config_service_save_failure_returns_false(tmp_path):
    blocker = tmp_path / "file"
    blocker.write_text("")
    service = ConfigService(config_path=blocker / "config.json")
    assert service.save({"a": 1}) is False


@pytest.mark.parametrize(
    "value, expected",
    [(True, True), (False, False), ("false", False), ("False", False), ("no", False), ("true", True), (1, True), (0, False)],
)
def test_confirm_all_in_file_is_normalized(tmp_path, value, expected):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"script": {"confirm_all": value}}))
    assert load_config(path)["script"]["confirm_all"] is expected


@pytest.mark.parametrize("value", ["maybe", 2, None, [], {}])
def test_confirm_all_garbage_raises_value_error(tmp_path, value):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"script": {"confirm_all": value}}))
    with pytest.raises(ValueError, match="confirm_all"):
        load_config(path)


def test_parse_bool():
    assert parse_bool(" Yes ") is True
    assert parse_bool("off") is False
    with pytest.raises(ValueError, match="flag"):
        parse_bool("sometimes", "flag")


@pytest.mark.parametrize("section, value", [("script", None), ("proxy", []), ("ssh_server", 22), ("conda", "x")])
def test_section_replaced_by_non_object_raises(tmp_path, section, value):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({section: value}))
    with pytest.raises(ValueError, match=f"'{section}'"):
        load_config(path)


def test_lookup_and_assign():
    data = {"proxy": {"host": "proxy.lab", "port": None}}
    assert lookup(data, "proxy.host") == "proxy.lab"
    assert lookup(data, "proxy.port", "fallback") is None
    assert lookup(data, "proxy.missing", "fallback") == "fallback"
    assert lookup(data, "proxy.host.deeper", "x") == "x"

    assign(data, "script.confirm_all", True)
    assign(data, "proxy.port", 8080)
    assert data == {"proxy": {"host": "proxy.lab", "port": 8080}, "script": {"confirm_all": True}}

    with pytest.raises(ValueError, match="proxy.host"):
        assign(data, "proxy.host.name", "x")
    with pytest.raises(ValueError):
        assign(data, "proxy..port", 1)


def test_get_config_value(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"proxy": {"port": 8080}}))
    assert get_config_value("proxy.port", path) == 8080
    assert get_config_value("proxy.host", path) == "squid.cs.wisc.edu"
    assert get_config_value("ssh_server", path) == {"port": 22}
    with pytest.raises(KeyError):
        get_config_value("proxy.nope", path)


def test_set_config_value_writes_only_the_file_content(tmp_path):
    path = tmp_path / "config.json"
    assert set_config_value("proxy.port", 8080, path) is True
    assert set_config_value("samba.net_shared_dir", "Shared", path) is True
    assert json.loads(path.read_text()) == {"proxy": {"port": 8080}, "samba": {"net_shared_dir": "Shared"}}
    assert load_config(path)["proxy"]["host"] == "squid.cs.wisc.edu"


@pytest.mark.parametrize("key, value", [("script", None), ("script.confirm_all", "perhaps"), ("proxy.port.x", 1)])
def test_set_config_value_rejects_invalid_result(tmp_path, key, value):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"proxy": {"port": 8080}}))
    with pytest.raises(ValueError):
        set_config_value(key, value, path)
    assert json.loads(path.read_text()) == {"proxy": {"port": 8080}}
