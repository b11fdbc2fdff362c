"""Shared utilities for retrieving remote payloads and coercing raw cell values."""

from __future__ import annotations

import math
from typing import Any, Mapping, MutableMapping

import httpx
from tenacity import retry, stop_after_attempt, wait_exponential

DEFAULT_TIMEOUT_SECONDS = 30.0
_DEFAULT_WAIT = wait_exponential(min=1, max=16)
_DEFAULT_STOP = stop_after_attempt(5)


Headers = Mapping[str, str] | None
Params = Mapping[str, Any] | None
Data = MutableMapping[str, Any] | bytes | str | None
JsonData = Any

_SENTINEL_VALUES = {"", ".", "NA", "N/A", "n/a", "null", "Null", "None", "-"}
_STRIP_CHARS = str.maketrans("", "", ",$%")


@retry(wait=_DEFAULT_WAIT, stop=_DEFAULT_STOP, reraise=True)
async def fetch_json(
    url: str,
    *,
    headers: Headers = None,
    params: Params = None,
    method: str = "GET",
    data: Data = None,
    json: JsonData = None,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
) -> Any:
    """Execute an HTTP request and return the decoded JSON payload.

    Retries with exponential backoff when transient failures occur. The helper keeps
    the interface close to ``httpx.AsyncClient.request`` so callers can forward
    API-specific requirements (headers, params, JSON body, etc.) without
    reimplementing networking concerns.
    """

    request_method = method.upper()
    async with httpx.AsyncClient(timeout=timeout) as client:
        response = await client.request(
            request_method,
            url,
            headers=headers,
            params=params,
            data=data,
            json=json,
        )

    response.raise_for_status()
    return response.json()


def coerce_float(value: Any) -> float | None:
    """Turn a raw cell into a finite float, or ``None`` when it is not numeric."""

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        numeric = float(value)
    elif isinstance(value, str):
        stripped = value.strip()
        if stripped in _SENTINEL_VALUES:
            return None
        try:
            numeric = float(stripped.translate(_STRIP_CHARS))
        except ValueError:
            return None
    else:
        return None

    if math.isnan(numeric) or math.isinf(numeric):
        return None
    return numeric


def as_number(value: float) -> int | float:
    """Collapse integral floats to ``int`` so emitted JSON reads ``12`` not ``12.0``."""

    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


__all__ = ["fetch_json", "coerce_float", "as_number", "DEFAULT_TIMEOUT_SECONDS"]
