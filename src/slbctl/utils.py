from __future__ import annotations

from collections.abc import Sequence
from enum import Enum
from typing import TypeVar

TEnum = TypeVar("TEnum", bound=Enum)


def normalize_int(value: object, *, default: int = 0) -> int:
    if value is None:
        return default
    try:
        return int(str(value).strip())
    except Exception:
        return default


def normalize_str(value: object) -> str:
    if value is None:
        return ""
    return str(value).strip()


def parse_port(value: object, *, field: str) -> int:
    if value is None:
        raise ValueError(f"Missing {field}")
    try:
        port = int(str(value).strip())
    except ValueError as e:
        raise ValueError(f"Invalid {field}: {value!r}") from e
    if not 1 <= port <= 65535:
        raise ValueError(f"Invalid {field}: {port} (expected 1-65535)")
    return port


def parse_int_in_range(value: object, *, field: str, low: int, high: int, default: int = 0) -> int:
    """Parse an optional integer; missing/empty values yield `default`."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return default
    try:
        n = int(str(value).strip())
    except Exception as e:
        raise ValueError(f"Invalid {field}: {value!r}") from e
    if n == default:
        return n
    if n < low or n > high:
        raise ValueError(f"Invalid {field}: {n} (expected {low}-{high})")
    return n


def parse_bandwidth(value: object) -> int:
    if value is None:
        raise ValueError("Missing bandwidth")
    try:
        n = int(str(value).strip())
    except Exception as e:
        raise ValueError(f"Invalid bandwidth: {value!r}") from e
    if n == -1 or 1 <= n <= 1000:
        return n
    raise ValueError(f"Invalid bandwidth: {n} (expected -1 or 1-1000)")


def parse_enum(enum_cls: type[TEnum], value: object, *, field: str) -> TEnum | None:
    if value is None:
        return None
    if isinstance(value, enum_cls):
        return value
    s = str(value).strip().lower()
    if not s:
        return None
    try:
        return enum_cls(s)
    except ValueError:
        allowed = ", ".join(str(m.value) for m in enum_cls)
        raise ValueError(f"Invalid {field}: {value!r}. Use one of: {allowed}") from None


def enum_or_none(enum_cls: type[TEnum], value: object) -> TEnum | None:
    """Tolerant enum conversion for remote payloads."""
    try:
        return parse_enum(enum_cls, value, field=enum_cls.__name__)
    except ValueError:
        return None


def parse_http_codes(value: object, allowed: Sequence[str], *, field: str) -> str:
    """Normalize a comma separated (or list) http code set.

    The result lists each code once, in `allowed` order, so equal sets compare equal.
    """
    if value is None:
        return ""
    if isinstance(value, str):
        parts = [p.strip().lower() for p in value.split(",")]
    elif isinstance(value, (list, tuple)):
        parts = [str(p).strip().lower() for p in value]
    else:
        raise ValueError(f"Invalid {field}: {value!r}")
    out: list[str] = []
    for p in parts:
        if not p:
            continue
        if p not in allowed:
            raise ValueError(f"Invalid {field}: {p!r}. Use any of: {', '.join(allowed)}")
        if p not in out:
            out.append(p)
    return ",".join(sorted(out, key=list(allowed).index))
