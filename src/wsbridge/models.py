"""Wire models of the Proxy variant.

A lookup request arrives as one JSON text frame and is answered by one
JSON text frame:

    >>> LookupRequest.from_frame('{"api":"ipinfo","ip":"8.8.8.8"}').api
    'ipinfo'
    >>> LookupResponse(api="ipinfo", data={"country": "US"}, id="42").to_frame()
    '{"api":"ipinfo","data":{"country":"US"},"id":"42"}'
"""

from __future__ import annotations

import json
import math
from typing import Any

from pydantic import BaseModel, ConfigDict


def encode_frame(payload: Any) -> str:
    """Serialize a payload as compact JSON, keeping non-ASCII text as is."""
    return json.dumps(payload, separators=(",", ":"), ensure_ascii=False)


def _reject_constant(name: str) -> Any:
    raise ValueError(f"{name} is not valid JSON")


def _finite_float(text: str) -> float:
    value = float(text)
    if not math.isfinite(value):
        raise ValueError(f"number out of range: {text}")
    return value


def decode_json(raw: str | bytes, **kwargs: Any) -> Any:
    """Decode strict JSON.

    ``NaN``, ``Infinity`` and ``-Infinity`` are rejected, as are numbers too
    large for a float, so anything decoded here can be written back out by
    :func:`encode_frame` as valid JSON.

    Raises:
        ValueError: If ``raw`` is not a valid JSON document
    """
    return json.loads(raw, parse_constant=_reject_constant, parse_float=_finite_float, **kwargs)


class LookupRequest(BaseModel):
    """Inbound lookup request.

    Unknown keys are ignored. ``id`` is echoed back verbatim and must be a
    string when present.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    api: str
    ip: str
    id: str | None = None

    @classmethod
    def from_frame(cls, text: str | bytes) -> LookupRequest:
        """Parse a request frame, rejecting repeated ``api``, ``ip`` or ``id`` keys.

        Raises:
            ValueError: If ``text`` is not strict JSON or repeats a field
            pydantic.ValidationError: If the document does not match the model
        """
        return cls.model_validate(decode_json(text, object_pairs_hook=_unique_fields))


def _unique_fields(pairs: list[tuple[str, Any]]) -> dict[str, Any]:
    seen: set[str] = set()
    for key, _ in pairs:
        if key in seen and key in LookupRequest.model_fields:
            raise ValueError(f"duplicate field {key!r}")
        seen.add(key)
    return dict(pairs)


class LookupResponse(BaseModel):
    """Outbound lookup response.

    ``data`` holds either the upstream JSON body as received or an
    ``{"error": ...}`` object describing why the lookup failed.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    api: str
    data: Any
    id: str | None = None

    def to_frame(self) -> str:
        payload: dict[str, Any] = {"api": self.api, "data": self.data}
        if self.id is not None:
            payload["id"] = self.id
        return encode_frame(payload)
