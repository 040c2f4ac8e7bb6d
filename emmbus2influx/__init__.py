"""Option parsing, settings, cron-style schedules and InfluxDB/Grafana/MQTT payloads for M-Bus meters."""

__version__ = "1.10.0"

__all__ = ["optionspec", "options", "payload", "schedule", "settings"]