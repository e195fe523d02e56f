"""
Best-effort persistence for the form: a key/value store standing in for browser
local storage, plus the shareable query string.

Nothing here raises on bad data. Unparseable values are treated as absent and
storage failures are logged and swallowed; callers fall back to defaults.
"""

from __future__ import annotations

import json
import math
import re
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Optional, Protocol, Union
from urllib.parse import parse_qsl, urlencode

import structlog

from engine import ALL_KEYS, MINIMAL_KEYS, HappinessInputs

logger = structlog.get_logger(__name__)

STORAGE_KEY = "hInputs"
THEME_KEY = "theme"
THEMES = ("light", "dark")


class StorageBackend(Protocol):
    def read(self, key: str) -> Optional[str]: ...

    def write(self, key: str, value: str) -> bool: ...


class MemoryStorage:
    """In-process store. Used in tests and as the fallback when no file store is configured."""

    def __init__(self, initial: Optional[Mapping[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def read(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def write(self, key: str, value: str) -> bool:
        self._data[key] = str(value)
        return True


class JsonFileStorage:
    """
    All keys live in one JSON object on disk. A missing, unreadable or corrupt
    file reads as empty; a failed write returns False.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def _load(self) -> Dict[str, str]:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError as exc:
            logger.debug("storage_read_failed", path=str(self.path), error=str(exc))
            return {}
        try:
            data = json.loads(raw)
        except ValueError as exc:
            logger.debug("storage_corrupt", path=str(self.path), error=str(exc))
            return {}
        if not isinstance(data, dict):
            return {}
        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    def read(self, key: str) -> Optional[str]:
        return self._load().get(key)

    def write(self, key: str, value: str) -> bool:
        data = self._load()
        data[key] = str(value)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self.path.with_suffix(self.path.suffix + ".tmp")
            tmp.write_text(json.dumps(data, ensure_ascii=False, sort_keys=True), encoding="utf-8")
            tmp.replace(self.path)
        except OSError as exc:
            logger.debug("storage_write_failed", path=str(self.path), error=str(exc))
            return False
        return True


# ----------------------- parsing -----------------------

# Leading decimal number, read the way a browser parseFloat reads "30px" or "7.5 hrs"
_LEADING_NUMBER_RE = re.compile(r"\s*[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?")


def parse_number(n: Any) -> Optional[float]:
    """
    Finite float from a number or a string starting with one ("30px" -> 30.0).
    None for anything else, including non-finite values.
    """
    if n is None or isinstance(n, bool):
        return None
    if isinstance(n, (int, float)):
        v = float(n)
    else:
        m = _LEADING_NUMBER_RE.match(str(n))
        if m is None:
            return None
        v = float(m.group(0))
    return v if math.isfinite(v) else None


def format_number(v: float) -> str:
    """Shortest decimal string that reads back to the same float; integers drop the '.0'."""
    v = float(v)
    if v.is_integer():
        return str(int(v))
    return repr(v)


def _pick_known(source: Mapping[str, Any]) -> Dict[str, float]:
    result: Dict[str, float] = {}
    for key in ALL_KEYS:
        if key not in source:
            continue
        n = parse_number(source[key])
        if n is not None:
            result[key] = n
    return result


# ----------------------- query string -----------------------

def inputs_from_query(search: Union[str, Mapping[str, Any]]) -> Dict[str, float]:
    """
    Decode any of the known fields from a query string ("?age=30&...") or a
    mapping such as st.query_params. Unknown keys and unparseable values are dropped.
    """
    if isinstance(search, str):
        # last occurrence wins, same as repeated assignment
        params: Dict[str, Any] = dict(parse_qsl(search.lstrip("?"), keep_blank_values=True))
    else:
        params = {}
        for k in search:
            v = search[k]
            if isinstance(v, (list, tuple)):
                v = v[-1] if v else None
            params[k] = v
    return _pick_known(params)


def inputs_to_query(inputs: Union[HappinessInputs, Mapping[str, float]],
                    keys: Iterable[str] = MINIMAL_KEYS) -> str:
    values = inputs.to_mapping() if isinstance(inputs, HappinessInputs) else dict(inputs)
    pairs = []
    for key in keys:
        n = parse_number(values.get(key))
        if n is not None:
            pairs.append((key, format_number(n)))
    return urlencode(pairs)


def query_params_for(inputs: HappinessInputs, keys: Iterable[str] = MINIMAL_KEYS) -> Dict[str, str]:
    """Same encoding as inputs_to_query, as a dict for st.query_params."""
    return dict(parse_qsl(inputs_to_query(inputs, keys)))


# ----------------------- stored record -----------------------

def save_inputs(storage: StorageBackend, inputs: HappinessInputs) -> bool:
    try:
        return bool(storage.write(STORAGE_KEY, json.dumps(inputs.to_mapping())))
    except Exception as exc:  # storage is best-effort
        logger.debug("save_inputs_failed", error=str(exc))
        return False


def load_inputs(storage: StorageBackend) -> Optional[Dict[str, float]]:
    try:
        raw = storage.read(STORAGE_KEY)
    except Exception as exc:
        logger.debug("load_inputs_failed", error=str(exc))
        return None
    if not raw:
        return None
    try:
        parsed = json.loads(raw)
    except ValueError:
        logger.debug("stored_inputs_not_json")
        return None
    if not isinstance(parsed, dict):
        return {}
    return _pick_known(parsed)


def resolve_initial_inputs(storage: StorageBackend,
                           query: Union[str, Mapping[str, Any], None] = None) -> HappinessInputs:
    """Defaults, then the stored record, then the query string; later sources win per field."""
    merged: Dict[str, float] = {}
    merged.update(load_inputs(storage) or {})
    if query:
        merged.update(inputs_from_query(query))
    return HappinessInputs.from_mapping(merged)


# ----------------------- theme -----------------------

def get_stored_theme(storage: StorageBackend) -> Optional[str]:
    try:
        t = storage.read(THEME_KEY)
    except Exception as exc:
        logger.debug("theme_read_failed", error=str(exc))
        return None
    return t if t in THEMES else None


def set_stored_theme(storage: StorageBackend, theme: str) -> bool:
    if theme not in THEMES:
        raise ValueError(f"Unknown theme: {theme!r}")
    try:
        return bool(storage.write(THEME_KEY, theme))
    except Exception as exc:
        logger.debug("theme_write_failed", error=str(exc))
        return False
