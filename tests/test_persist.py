"""
Tests for `persist.py`.

Covers:
- Number parsing and decimal formatting
- Query string encode / decode (round trip, bad values, mappings)
- Stored record load / save through memory and JSON-file backends
- Swallowed storage failures
- Start-up merge order (defaults < storage < query)
- Theme flag
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from engine import HappinessInputs
from persist import (
    STORAGE_KEY,
    THEME_KEY,
    JsonFileStorage,
    MemoryStorage,
    format_number,
    get_stored_theme,
    inputs_from_query,
    inputs_to_query,
    load_inputs,
    parse_number,
    query_params_for,
    resolve_initial_inputs,
    save_inputs,
    set_stored_theme,
)


class BrokenStorage:
    """Every call fails, like local storage disabled in a private window."""

    def read(self, key: str):
        raise OSError("storage unavailable")

    def write(self, key: str, value: str) -> bool:
        raise OSError("storage unavailable")


@pytest.fixture
def memory() -> MemoryStorage:
    return MemoryStorage()


# ----------------------- parsing -----------------------

@pytest.mark.parametrize(
    "raw,expected",
    [(3, 3.0), (2.5, 2.5), ("7", 7.0), (" 8.25 ", 8.25), ("-1", -1.0)],
)
def test_parse_number_accepts_numbers(raw, expected) -> None:
    assert parse_number(raw) == expected


@pytest.mark.parametrize("raw", [None, "", "abc", "nan", "inf", "-Infinity", True, [], {}])
def test_parse_number_rejects_junk(raw) -> None:
    assert parse_number(raw) is None


def test_format_number() -> None:
    assert format_number(7.0) == "7"
    assert format_number(2.5) == "2.5"
    assert format_number(0.1) == "0.1"
    assert format_number(-3) == "-3"


# ----------------------- query string -----------------------

def test_default_inputs_to_query() -> None:
    assert inputs_to_query(HappinessInputs()) == (
        "age=30&sleepHoursPerNight=7&exerciseHoursPerWeek=2.5&stressLevel=5"
    )


@pytest.mark.parametrize(
    "values",
    [
        {"age": 30, "sleepHoursPerNight": 7, "exerciseHoursPerWeek": 2.5, "stressLevel": 5},
        {"age": 0.1, "sleepHoursPerNight": 6.35, "exerciseHoursPerWeek": 1 / 3, "stressLevel": 9.999},
        {"age": 109.5, "sleepHoursPerNight": 0, "exerciseHoursPerWeek": 20, "stressLevel": 1},
    ],
)
def test_query_round_trip(values) -> None:
    inp = HappinessInputs.from_mapping(values)
    decoded = inputs_from_query(inputs_to_query(inp))
    assert decoded == {k: float(v) for k, v in values.items()}


def test_query_only_encodes_minimal_keys_by_default() -> None:
    q = inputs_to_query(HappinessInputs(work_hours_per_week=60))
    assert "workHoursPerWeek" not in q
    assert "workHoursPerWeek=60" in inputs_to_query(HappinessInputs(work_hours_per_week=60),
                                                    keys=["workHoursPerWeek"])


def test_from_query_drops_bad_and_unknown_values() -> None:
    parsed = inputs_from_query("?age=abc&sleepHoursPerNight=8&foo=1&stressLevel=inf&exerciseHoursPerWeek=")
    assert parsed == {"sleepHoursPerNight": 8.0}


def test_from_query_reads_any_known_field() -> None:
    parsed = inputs_from_query("socialContactsPerWeek=4&planAdherencePercent=75")
    assert parsed == {"socialContactsPerWeek": 4.0, "planAdherencePercent": 75.0}


def test_from_query_accepts_mapping() -> None:
    parsed = inputs_from_query({"age": "41", "stressLevel": ["2", "3"], "other": "x"})
    assert parsed == {"age": 41.0, "stressLevel": 3.0}


def test_query_params_for() -> None:
    params = query_params_for(HappinessInputs(age=45.5))
    assert params == {
        "age": "45.5",
        "sleepHoursPerNight": "7",
        "exerciseHoursPerWeek": "2.5",
        "stressLevel": "5",
    }


# ----------------------- stored record -----------------------

def test_save_then_load(memory: MemoryStorage) -> None:
    inp = HappinessInputs(age=52, mindfulness_minutes_per_day=20)
    assert save_inputs(memory, inp) is True
    loaded = load_inputs(memory)
    assert loaded == inp.to_mapping()
    assert HappinessInputs.from_mapping(loaded) == inp


def test_load_missing_returns_none(memory: MemoryStorage) -> None:
    assert load_inputs(memory) is None


def test_load_ignores_unknown_and_bad_fields() -> None:
    storage = MemoryStorage({STORAGE_KEY: json.dumps({"age": "41", "stressLevel": "x", "unknown": 3})})
    assert load_inputs(storage) == {"age": 41.0}


def test_load_not_json_returns_none() -> None:
    assert load_inputs(MemoryStorage({STORAGE_KEY: "{not json"})) is None


def test_load_non_object_json_is_empty() -> None:
    assert load_inputs(MemoryStorage({STORAGE_KEY: "[1, 2, 3]"})) == {}


def test_broken_storage_is_swallowed() -> None:
    broken = BrokenStorage()
    assert save_inputs(broken, HappinessInputs()) is False
    assert load_inputs(broken) is None
    assert get_stored_theme(broken) is None
    assert set_stored_theme(broken, "dark") is False
    assert resolve_initial_inputs(broken, "age=33") == HappinessInputs(age=33)


# ----------------------- file backend -----------------------

def test_json_file_storage_persists(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "storage.json"
    store = JsonFileStorage(path)
    assert store.read(STORAGE_KEY) is None
    assert store.write(THEME_KEY, "dark") is True
    assert save_inputs(store, HappinessInputs(age=61)) is True

    reopened = JsonFileStorage(path)
    assert reopened.read(THEME_KEY) == "dark"
    assert load_inputs(reopened)["age"] == 61.0


def test_json_file_storage_corrupt_file_reads_empty(tmp_path: Path) -> None:
    path = tmp_path / "storage.json"
    path.write_text("this is not json", encoding="utf-8")
    store = JsonFileStorage(path)
    assert store.read(THEME_KEY) is None
    # a write replaces the corrupt content
    assert store.write(THEME_KEY, "light") is True
    assert store.read(THEME_KEY) == "light"


def test_json_file_storage_write_failure(tmp_path: Path) -> None:
    blocker = tmp_path / "not_a_dir"
    blocker.write_text("x", encoding="utf-8")
    store = JsonFileStorage(blocker / "storage.json")
    assert store.write(THEME_KEY, "dark") is False
    assert save_inputs(store, HappinessInputs()) is False


# ----------------------- merge order -----------------------

def test_resolve_initial_inputs_precedence(memory: MemoryStorage) -> None:
    save_inputs(memory, HappinessInputs(age=40, sleep_hours_per_night=8))
    inp = resolve_initial_inputs(memory, "?age=50&stressLevel=abc")
    assert inp.age == 50.0
    assert inp.sleep_hours_per_night == 8.0
    assert inp.stress_level == 5.0


def test_resolve_initial_inputs_defaults(memory: MemoryStorage) -> None:
    assert resolve_initial_inputs(memory) == HappinessInputs()
    assert resolve_initial_inputs(memory, {}) == HappinessInputs()


# ----------------------- theme -----------------------

def test_theme_round_trip(memory: MemoryStorage) -> None:
    assert get_stored_theme(memory) is None
    assert set_stored_theme(memory, "dark") is True
    assert get_stored_theme(memory) == "dark"


def test_unknown_stored_theme_is_ignored() -> None:
    assert get_stored_theme(MemoryStorage({THEME_KEY: "blue"})) is None


def test_set_unknown_theme_raises(memory: MemoryStorage) -> None:
    with pytest.raises(ValueError):
        set_stored_theme(memory, "blue")


# ----------------------- leading-number parsing -----------------------

@pytest.mark.parametrize(
    "raw,expected",
    [("30px", 30.0), ("8h", 8.0), ("7.5 hrs", 7.5), (" .5x", 0.5), ("-2abc", -2.0), ("1e2m", 100.0), ("3.", 3.0)],
)
def test_parse_number_reads_leading_number(raw: str, expected: float) -> None:
    assert parse_number(raw) == expected


@pytest.mark.parametrize("raw", ["px30", ".", "-", "e5", "1e400"])
def test_parse_number_without_leading_finite_number(raw: str) -> None:
    assert parse_number(raw) is None


def test_from_query_keeps_numeric_prefix() -> None:
    parsed = inputs_from_query("age=30px&sleepHoursPerNight=8h&stressLevel=high")
    assert parsed == {"age": 30.0, "sleepHoursPerNight": 8.0}


def test_load_keeps_numeric_prefix() -> None:
    storage = MemoryStorage({STORAGE_KEY: json.dumps({"age": "41 years"})})
    assert load_inputs(storage) == {"age": 41.0}
