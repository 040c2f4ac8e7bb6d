import pytest

from emmbus2influx.optionspec import OptionError, check_duplicates
from emmbus2influx.settings import (
    CONFFILE,
    ConfigError,
    Settings,
    build_options,
    default_cron_expression,
    find_config_file,
    parse_settings,
    validate,
)


@pytest.fixture(autouse=True)
def _empty_cwd(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)


def _write_conf(tmp_path, text):
    path = tmp_path / "test.conf"
    path.write_text(text)
    return str(path)


def test_default_cron_expression_format():
    assert default_cron_expression(7200) == "*/7200 * * * * *"


def test_settings_cron_expression_uses_poll_when_no_cron():
    s = Settings(poll=30)
    assert s.cron_expression == default_cron_expression(30)
    s.cron = "0 * * * * *"
    assert s.cron_expression == "0 * * * * *"


def test_find_config_file_default():
    assert find_config_file(["prog", "-v"], CONFFILE) == CONFFILE


def test_find_config_file_given(tmp_path):
    path = _write_conf(tmp_path, "")
    assert find_config_file(["prog", f"--configfile={path}"], CONFFILE) == path


def test_find_config_file_missing(tmp_path):
    with pytest.raises(ConfigError):
        find_config_file(["prog", f"--configfile={tmp_path / 'nope.conf'}"], CONFFILE)


def test_build_options_has_no_duplicates():
    options = build_options(Settings())
    check_duplicates(options)
    longs = {o.long for o in options}
    assert {"help", "configfile", "server", "mqttserver", "scan2"} <= longs


def test_parse_defaults_without_config():
    s = parse_settings(["prog"])
    assert s.baud == 2400
    assert s.measurement == "energyMeter"
    assert s.tag_name == "Meter"
    assert s.port == 8086
    assert s.mqtt_prefix == "ad/house/energy/"
    assert s.config_file == CONFFILE


def test_parse_config_and_command_line_override(tmp_path):
    path = _write_conf(tmp_path, "# comment\nserver=influx.local\ndb=energy\nport=9000\n")
    s = parse_settings(["prog", f"--configfile={path}", "--port=8087", "-v3"])
    assert s.server == "influx.local"
    assert s.db == "energy"
    assert s.port == 8087
    assert s.verbose == 3
    assert s.influx_api_version == 1


def test_config_reading_stops_at_section(tmp_path):
    path = _write_conf(tmp_path, "device=/dev/ttyUSB0\n[Meter]\nnot an option\n")
    s = parse_settings(["prog", f"--configfile={path}"])
    assert s.device == "/dev/ttyUSB0"


def test_verbose_flag_increments():
    s = parse_settings(["prog", "-v", "--verbose"])
    assert s.verbose == 2


def test_unknown_option_raises():
    with pytest.raises(OptionError):
        parse_settings(["prog", "--nosuchoption"])


def test_v1_requires_database():
    with pytest.raises(ConfigError, match="database"):
        parse_settings(["prog", "--server=influx.local"])


def test_v2_requires_token():
    with pytest.raises(ConfigError, match="token"):
        parse_settings(["prog", "-sinflux.local", "-Oorg", "-Bbucket"])


def test_v2_warns_about_v1_settings():
    s = Settings(server="influx.local", org="org", bucket="bucket", token="token", db="energy")
    warnings = validate(s)
    assert s.influx_api_version == 2
    assert len(warnings) == 1
    assert "database" in warnings[0]


def test_try_skips_influx_checks():
    s = parse_settings(["prog", "--server=influx.local", "-t"])
    assert s.try_connect == 1
    assert s.db is None


def test_influx_api_string_skips_checks():
    s = Settings(server="influx.local", influx_api="/write")
    assert validate(s) == []


def test_mqtt_server_needs_prefix():
    with pytest.raises(ConfigError, match="mqttprefix"):
        validate(Settings(mqtt_server="broker", mqtt_prefix=None))


def test_help_exits_with_one(capsys):
    with pytest.raises(SystemExit) as exc:
        parse_settings(["prog", "-h"])
    assert exc.value.code == 1
    assert "Usage: prog [OPTION]..." in capsys.readouterr().out


def test_version_exits_with_two(capsys):
    with pytest.raises(SystemExit) as exc:
        parse_settings(["prog", "--version"])
    assert exc.value.code == 2
    assert "emmbus2influx" in capsys.readouterr().out


def test_grafana_enabled_needs_all_three():
    s = parse_settings(["prog", "--ghost=ws://localhost", "--gtoken=token"])
    assert not s.grafana_enabled
    s.grafana_push_id = "push"
    assert s.grafana_enabled