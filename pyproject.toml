[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "emmbus2influx"
version = "1.10.0"
description = "Option parsing, cron-style schedules and InfluxDB/Grafana/MQTT payloads for reading M-Bus energy meters"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "mbus",
    "m-bus",
    "energy-meter",
    "influxdb",
    "grafana",
    "mqtt",
    "cron",
    "monitoring",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Monitoring",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["emmbus2influx"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]
