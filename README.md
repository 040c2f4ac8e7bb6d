# emmbus2influx

Building blocks for a daemon that reads M-Bus energy meters on cron-style
schedules and hands the values on to InfluxDB (v1 or v2 API), Grafana Live
and MQTT: its option and config-file parser, its settings, its schedule
table and the rendering of meter values into payloads.

## Modules

- `emmbus2influx.optionspec` – describes one option with `Option` (short
  and long name, `ArgRequired`, `ArgType`, whether it is required, where its
  value is stored, an optional callback and its help text). `Option.label()`
  gives the left column of its help line, `help_width` the width of that
  column for a list of options, and `check_duplicates` raises `OptionError`
  when two options share a short or long name. Required options that were
  never given raise `MissingOptionsError`.
- `emmbus2influx.options` – `OptionParser` reads long options from a
  configuration file first and then parses short (`-v9`) and long
  (`--verbose=9`) options from the command line. `parse(argv,
  allow_optional_args)` returns the arguments given without dashes (or
  raises `OptionError` if they are not allowed). In the configuration file
  each line holds `name=value` or just `name`; blank lines and lines starting
  with `#` are skipped, and reading stops at the first line starting with
  `[`, so the same file may carry further sections. A missing configuration
  file is skipped silently. A flag given as `-f-` counts down again, which
  lets the command line take back a flag set in the file. `format_help()`
  returns the help text; `show_help()` prints it and exits with status 1.
- `emmbus2influx.schedule` – `ScheduleTable` holds named schedules plus one
  default schedule (name `None`), each a `Schedule` with a cron expression,
  its member meters and its next query time. Defining a named schedule twice
  or referring to an unknown one raises `ScheduleError`; defining the default
  again replaces its expression with a warning. `set_default` puts meters
  that belong to no named schedule on the default one and sets every next
  query time; `due_meters(now)` returns each meter of the due schedules once
  (skipping disabled ones) and moves those schedules on; `describe()`
  renders the table, with times formatted by `format_time`.
- `emmbus2influx.payload` – turns a `Meter` with its `RegisterReading`s and
  `Formula`s into an MQTT JSON payload (`mqtt_payload`), InfluxDB fields
  (`influx_fields`), Grafana Live fields (`grafana_fields`) and a Grafana
  channel name (`grafana_channel`). Fields are `(name, value, decimals)`
  triples, with `decimals` set to `None` for integer values. Consecutive
  values that share an array name are grouped into one JSON array.
- `emmbus2influx.settings` – `Settings` holds every setting;
  `build_options` gives the option table that fills it, `find_config_file`
  picks the file named by `--configfile=` (or the default
  `emmbus2influx.conf`), and `parse_settings` reads the configuration file
  and the command line and then runs `validate`. `validate` decides between
  the InfluxDB v1 and v2 API (stored in `influx_api_version`), raises
  `ConfigError` when a needed setting is missing and returns warnings for
  settings the chosen API ignores. `default_cron_expression` builds the
  default schedule from a poll interval.

## Examples

Values are written with the register's number of decimals, or as integers:

```python
from emmbus2influx.payload import format_value

format_value(12.5, 2, False)   # "12.50"
format_value(7.9, 0, True)     # "7"
```

When no cron expression is given, a poll interval in seconds becomes one:

```python
from emmbus2influx.settings import default_cron_expression

default_cron_expression(60)    # "*/60 * * * * *"
```

Reading the settings from a command line (they are validated as well):

```python
from emmbus2influx.settings import parse_settings

settings = parse_settings(["emmbus2influx", "--server=localhost", "--db=energy", "-v2"])
settings.verbose              # 2
settings.influx_api_version   # 1
settings.cron_expression      # "*/7200 * * * * *"
```

## Options

The main options understood by `parse_settings`:

| Option | Meaning |
| --- | --- |
| `--configfile=` | configuration file name |
| `-d`, `--device=` | serial device name |
| `--baud=` | baud rate (2400) |
| `-m`, `--measurement=` | InfluxDB measurement (`energyMeter`) |
| `-g`, `--tagname=` | InfluxDB tag name (`Meter`) |
| `-s`, `--server=`, `-o`, `--port=` | InfluxDB server and port (8086) |
| `-b`, `--db=`, `-u`, `--user=`, `-p`, `--password=` | InfluxDB v1 database and credentials |
| `-B`, `--bucket=`, `-O`, `--org=`, `-T`, `--token=` | InfluxDB v2 bucket, organisation and token |
| `-A`, `--influxapi=` | InfluxDB API string; the v1/v2 checks are then skipped |
| `-M`, `--mqttserver=`, `-R`, `--mqttport=`, `-C`, `--mqttprefix=` | MQTT server, port and topic prefix |
| `--ghost=`, `--gport=`, `--gtoken=`, `--gpushid=` | Grafana Live connection |
| `-P`, `--poll=` | poll interval in seconds (7200) |
| `-H`, `--cron=` | default schedule as a cron expression |
| `-v`, `--verbose[=]` | raise or set the verbosity |
| `-U`, `--dryrun[=]` | raise or set the dry-run count |
| `-e`, `--version` | print the version and exit with status 2 |
| `-h`, `--help` | print the help and exit with status 1 |

## What the package does not do

The package has no command of its own and does not talk to any device or
server: it does not read M-Bus meters over a serial line or TCP, and it does
not send anything to InfluxDB, Grafana Live or an MQTT broker. It also does
not evaluate cron expressions itself: a `ScheduleTable` is given a
`next_time(expression, now)` function that returns the next run time and
raises `ValueError` for an invalid expression.

## Running the tests

Install the package with its `test` extra and run `pytest` from the project
directory.