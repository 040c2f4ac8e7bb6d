"""Program settings from the config file and the command line, and their checks."""

from __future__ import annotations

import logging
import platform
import sys
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from emmbus2influx.options import OptionParser
from emmbus2influx.optionspec import ArgRequired, ArgType, Option

try:
    import syslog as _syslog
except ImportError:  # not available on every platform
    _syslog = None

log = logging.getLogger(__name__)

ME = "emmbus2influx"
VERSION = "1.10"
CONFFILE = "emmbus2influx.conf"
CONFFILE_ARG = "--configfile="

NUM_RECS_TO_BUFFER_ON_FAILURE = 1000
INFLUX_DEFAULT_MEASUREMENT = "energyMeter"
INFLUX_DEFAULT_TAGNAME = "Meter"
MQTT_PREFIX_DEF = "ad/house/energy/"
DEFAULT_POLL_SECONDS = 60 * 60 * 2

HELP_BOTTOM = (
    "The cache will be used in case the influxdb server is down. In\n"
    "that case data will be send when the server is reachable again.\n"
)


class ConfigError(Exception):
    """The settings are incomplete or contradict each other."""


@dataclass
class Settings:
    """Everything that can be set in the config file or on the command line."""

    config_file: str | None = None
    device: str | None = None
    baud: int = 2400
    measurement: str = INFLUX_DEFAULT_MEASUREMENT
    tag_name: str = INFLUX_DEFAULT_TAGNAME
    server: str | None = None
    port: int = 8086
    db: str | None = None
    user: str | None = None
    password: str | None = None
    bucket: str | None = None
    org: str | None = None
    token: str | None = None
    influx_api: str | None = None
    influx_write_mult: int = 0
    influx_ssl_verify_peer: int = 1
    cache: int = NUM_RECS_TO_BUFFER_ON_FAILURE
    mqtt_server: str | None = None
    mqtt_prefix: str | None = MQTT_PREFIX_DEF
    mqtt_port: int = 0  # 0 selects the client's default port
    mqtt_qos: int = 0
    mqtt_retain: int = 0
    grafana_host: str | None = None
    grafana_port: int = 3000
    grafana_token: str | None = None
    grafana_push_id: str | None = None
    grafana_use_influx_measurement: int = 0
    grafana_ssl_verify_peer: int = 1
    verbose: int = 0
    poll: int = DEFAULT_POLL_SECONDS
    cron: str | None = None
    syslog: int = 0
    dump_registers: int = 0
    dryrun: int = 0
    try_connect: int = 0
    formula_meter: str | None = None
    formula_try: int = 0
    scan1: int = 0
    scan2: int = 0
    influx_api_version: int = 1

    @property
    def cron_expression(self) -> str:
        """The default schedule: the cron option, or one built from the poll interval."""
        return self.cron if self.cron else default_cron_expression(self.poll)

    @property
    def grafana_enabled(self) -> bool:
        return bool(self.grafana_host and self.grafana_token and self.grafana_push_id)


def default_cron_expression(interval_seconds: int) -> str:
    """A cron expression (with seconds) that fires every ``interval_seconds`` seconds."""
    return f"*/{interval_seconds} * * * * *"


def find_config_file(argv: Sequence[str], default: str) -> str:
    """The file named by ``--configfile=`` in ``argv[1:]``, or ``default``.

    Raises ConfigError if the named file cannot be opened.
    """
    for arg in list(argv)[1:]:
        if arg.startswith(CONFFILE_ARG):
            path = arg[len(CONFFILE_ARG):]
            try:
                with open(path, "rb"):
                    pass
            except OSError as exc:
                raise ConfigError(f"unable to open config file '{path}'") from exc
            log.info('using configfile "%s"', path)
            return path
    return default


def _show_help(parser: OptionParser, arg: str) -> None:
    parser.show_help(arg)


def _syslog_test(parser: OptionParser, arg: str) -> None:
    print(f"{ME} : sending testtext via syslog\n")
    if _syslog is None:
        raise ConfigError("syslog is not available on this platform")
    _syslog.openlog(ME)
    _syslog.syslog(f"testtext via syslog by {ME}")
    _syslog.closelog()
    raise SystemExit(0)


def _version_text() -> str:
    lines = [f"{ME} {VERSION}", f"  python: {platform.python_version()}"]
    return "\n".join(lines) + "\n"


def _show_version(parser: OptionParser, arg: str) -> None:
    sys.stdout.write(_version_text())
    sys.stdout.flush()
    raise SystemExit(2)


def build_options(settings: Settings) -> list[Option]:
    """The option table; parsed values are stored in ``settings``."""

    def num(short: str | None, long: str, dest: str, text: str, show: bool = True) -> Option:
        return Option(short=short, long=long, arg=ArgRequired.REQUIRED, type=ArgType.INT,
                      show_default=show, target=settings, dest=dest, help=text)

    def text_opt(short: str | None, long: str, dest: str, text: str, show: bool = True) -> Option:
        return Option(short=short, long=long, arg=ArgRequired.REQUIRED, type=ArgType.STR,
                      show_default=show, target=settings, dest=dest, help=text)

    def flag(short: str | None, long: str, dest: str | None, text: str,
             optional_value: bool = False,
             callback: Callable[[OptionParser, str], None] | None = None) -> Option:
        return Option(short=short, long=long,
                      arg=ArgRequired.OPTIONAL if optional_value else ArgRequired.NO,
                      type=ArgType.INT,
                      target=settings if dest else None, dest=dest,
                      callback=callback, help=text)

    return [
        Option(short="h", long="help", callback=_show_help, help="show this help and exit"),
        text_opt(None, "configfile", "config_file", "config file name", show=False),
        text_opt("d", "device", "device", "specify serial device name", show=False),
        num(None, "baud", "baud", "baudrate"),
        text_opt("m", "measurement", "measurement", "Influxdb measurement"),
        text_opt("g", "tagname", "tag_name", "Influxdb tag name"),
        text_opt("s", "server", "server", "influxdb server name or ip"),
        num("o", "port", "port", "influxdb port"),
        text_opt("b", "db", "db", "Influxdb v1 database name"),
        text_opt("u", "user", "user", "Influxdb v1 user name"),
        text_opt("p", "password", "password", "Influxdb v1 password"),
        text_opt("B", "bucket", "bucket", "Influxdb v2 bucket"),
        text_opt("O", "org", "org", "Influxdb v2 org"),
        text_opt("T", "token", "token", "Influxdb v2 auth api token", show=False),
        text_opt("A", "influxapi", "influx_api",
                 "Influxdb api string, if specified db..token will not be used", show=False),
        num(None, "influxwritemult", "influx_write_mult", "Influx write multiplicator", show=False),
        num(None, "isslverifypeer", "influx_ssl_verify_peer",
            "Influx SSL certificate verification (0=off)"),
        num("c", "cache", "cache", "#entries for influxdb cache"),
        text_opt("M", "mqttserver", "mqtt_server", "mqtt server name or ip"),
        text_opt("C", "mqttprefix", "mqtt_prefix", "prefix for mqtt publish"),
        num("R", "mqttport", "mqtt_port", "ip port for mqtt server"),
        num("Q", "mqttqos", "mqtt_qos", "default mqtt QOS, can be changed for meter"),
        num("r", "mqttretain", "mqtt_retain", "default mqtt retain, can be changed for meter"),
        text_opt(None, "ghost", "grafana_host",
                 "grafana server url w/o port, e.g. ws://localost or https://localhost"),
        num(None, "gport", "grafana_port", "grafana port"),
        text_opt(None, "gtoken", "grafana_token", "authorisation api token for Grafana"),
        text_opt(None, "gpushid", "grafana_push_id", "push id for Grafana"),
        num(None, "ginfluxmeas", "grafana_use_influx_measurement",
            "use influx measurement names for grafana as well"),
        num(None, "gsslverifypeer", "grafana_ssl_verify_peer",
            "grafana SSL certificate verification (0=off)"),
        flag("v", "verbose", "verbose", "increase or set verbose level", optional_value=True),
        num("P", "poll", "poll", "poll intervall in seconds", show=False),
        text_opt("H", "cron", "cron",
                 "Crontab style expression like Sec Min Hour Day Mon Wday", show=False),
        flag("y", "syslog", "syslog", "log to syslog insead of stderr"),
        flag("Y", "syslogtest", None, "send a testtext to syslog and exit",
             callback=_syslog_test),
        flag("e", "version", None, "show version and exit", callback=_show_version),
        flag("D", "dumpregisters", "dump_registers",
             "Show registers read from all meters and exit, twice to show received data"),
        flag("U", "dryrun", "dryrun",
             "Show what would be written to MQQT/Influx for one query and exit",
             optional_value=True),
        flag("t", "try", "try_connect", "try to connect returns 0 on success"),
        text_opt(None, "formtryt", "formula_meter",
                 "interactive try out formula for register values for a given meter name",
                 show=False),
        flag(None, "formtry", "formula_try",
             "interactive try out formula (global for formulas in meter definition)"),
        flag("1", "scan", "scan1", "scan for serial mbus devices on primary address"),
        flag("2", "scan2", "scan2", "scan for serial mbus devices on secondary address"),
    ]


def validate(settings: Settings) -> list[str]:
    """Check that the Influx and MQTT settings fit together; return warnings.

    Sets ``settings.influx_api_version`` and raises ConfigError when a needed
    setting is missing.
    """
    warnings: list[str] = []
    if not settings.try_connect and settings.server and not settings.influx_api:
        version = 2 if (settings.org or settings.token or settings.bucket) else 1
        settings.influx_api_version = version
        if version == 1:
            if not settings.db:
                raise ConfigError("influxdb database name not specified")
        else:
            if not settings.org:
                raise ConfigError("influxdb org not specified")
            if not settings.bucket:
                raise ConfigError("influxdb bucket not specified")
            if not settings.token:
                raise ConfigError("influxdb token not specified")
            if settings.db:
                warnings.append("database name ignored for influxdb v2 api")
            if settings.user:
                warnings.append("user name ignored for influxdb v2 api")
            if settings.password:
                warnings.append("password ignored for influxdb v2 api")
    if settings.mqtt_server and not settings.mqtt_prefix:
        raise ConfigError("mqttprefix required")
    for warning in warnings:
        log.warning(warning)
    return warnings


def parse_settings(argv: Sequence[str] | None = None) -> Settings:
    """Read the config file and the command line into checked Settings.

    Raises OptionError for invalid options and ConfigError for invalid settings.
    """
    argv = list(sys.argv if argv is None else argv)
    settings = Settings()
    settings.config_file = find_config_file(argv, CONFFILE)
    parser = OptionParser(build_options(settings), settings.config_file, None, HELP_BOTTOM)
    parser.parse(argv, False)
    validate(settings)
    return settings