import pytest

from emmbus2influx.payload import Meter
from emmbus2influx.schedule import Schedule, ScheduleError, ScheduleTable, format_time


def step_next_time(expression: str, now: float) -> float:
    """Expressions are plain numbers of seconds between runs."""
    return now + int(expression)


@pytest.fixture
def table():
    return ScheduleTable(step_next_time)


def test_format_time_epoch():
    assert format_time(0) == "01.00.1970 00:00:00"


def test_format_time_shape():
    text = format_time(86400 * 40 + 3661)
    assert text.endswith("01:01:01")
    assert len(text) == 19


def test_is_due():
    schedule = Schedule(name="a", expression="10", next_query_time=100)
    assert schedule.is_due(100)
    assert schedule.is_due(150)
    assert not schedule.is_due(99)


def test_add_and_find(table):
    a = table.add("a", "10")
    d = table.add(None, "60")
    assert table.find("a") is a
    assert table.find(None) is d
    assert table.find("missing") is None
    assert len(table) == 2


def test_duplicate_named_schedule(table):
    table.add("a", "10")
    with pytest.raises(ScheduleError):
        table.add("a", "20")


def test_default_is_overwritten(table):
    first = table.add(None, "10")
    second = table.add(None, "20")
    assert first is second
    assert second.expression == "20"
    assert len(table) == 1


def test_invalid_expression(table):
    with pytest.raises(ScheduleError):
        table.add("bad", "not a number")
    assert table.find("bad") is None


def test_add_meter_by_unknown_name(table):
    with pytest.raises(ScheduleError):
        table.add_meter_by_name("nope", Meter("m"))


def test_set_default_assigns_unscheduled(table):
    table.add(None, "60")
    table.add("fast", "5")
    m1, m2 = Meter("m1"), Meter("m2")
    table.add_meter_by_name("fast", m1)
    table.set_default([m1, m2], now=1000)
    assert table.find(None).members == [m2]
    assert table.find("fast").members == [m1]
    assert table.find(None).next_query_time == 1060
    assert table.find("fast").next_query_time == 1005
    assert table.schedule_count(m1) == 1
    assert table.schedule_count(m2) == 0


def test_set_default_without_default_schedule(table):
    table.add("fast", "5")
    with pytest.raises(ScheduleError):
        table.set_default([Meter("m")], now=0)


def test_due_meters(table):
    table.add(None, "60")
    table.add("fast", "5")
    m1, m2, m3 = Meter("m1"), Meter("m2"), Meter("m3", disabled=True)
    table.add_meter_by_name("fast", m1)
    table.add_meter_by_name("fast", m3)
    table.set_default([m1, m2, m3], now=1000)
    assert table.due_meters(1004) == []
    assert table.due_meters(1005) == [m1]
    assert table.find("fast").next_query_time == 1010
    assert table.find(None).next_query_time == 1060
    assert table.due_meters(1060) == [m2, m1]


def test_due_meters_unique(table):
    table.add("a", "5")
    table.add("b", "5")
    m = Meter("m")
    table.add_meter_by_name("a", m)
    table.add_meter_by_name("b", m)
    table.set_default([m], now=0)
    assert table.due_meters(5) == [m]
    assert table.schedule_count(m) == 2


def test_empty_schedule_not_advanced(table):
    table.add("empty", "5")
    table.add(None, "5")
    table.set_default([], now=0)
    assert table.due_meters(100) == []
    assert table.find("empty").next_query_time == 5


def test_describe(table):
    table.add(None, "60")
    table.add("fast", "5")
    table.add_meter_by_name("fast", Meter("a"))
    table.add_meter_by_name("fast", Meter("b"))
    table.set_default([], now=0)
    text = table.describe()
    assert text.startswith("Schedules\n")
    assert "Members: [a,b] " in text
    assert f"next query: {format_time(5)}" in text
    assert "default" in text
    assert text.count("next query:") == 2