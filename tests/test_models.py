"""Tests for the Proxy wire models."""

import json

import pytest
from pydantic import ValidationError

from wsbridge.models import LookupRequest, LookupResponse, decode_json, encode_frame


class TestLookupRequest:
    def test_parses_with_and_without_id(self) -> None:
        with_id = LookupRequest.from_frame('{"api":"ipinfo","ip":"8.8.8.8","id":"42"}')
        without_id = LookupRequest.from_frame('{"api":"ipinfo","ip":"8.8.8.8"}')

        assert with_id.id == "42"
        assert without_id.id is None

    def test_numeric_id_rejected(self) -> None:
        with pytest.raises(ValidationError):
            LookupRequest.from_frame('{"api":"ipinfo","ip":"8.8.8.8","id":42}')

    def test_numeric_ip_rejected(self) -> None:
        with pytest.raises(ValidationError):
            LookupRequest.from_frame('{"api":"ipinfo","ip":8}')

    def test_repeated_field_rejected(self) -> None:
        with pytest.raises(ValueError, match="duplicate field 'api'"):
            LookupRequest.from_frame('{"api":"bogus","api":"ipinfo","ip":"1"}')

    def test_repeated_unknown_key_ignored(self) -> None:
        request = LookupRequest.from_frame('{"api":"ipinfo","ip":"1","x":1,"x":2}')
        assert request.api == "ipinfo"


class TestDecodeJson:
    @pytest.mark.parametrize("raw", ["NaN", "[Infinity]", '{"a": -Infinity}', "1e400"])
    def test_non_finite_numbers_rejected(self, raw: str) -> None:
        with pytest.raises(ValueError):
            decode_json(raw)

    def test_accepts_bytes_and_plain_numbers(self) -> None:
        assert decode_json(b'{"lat": -33.87, "n": 12}') == {"lat": -33.87, "n": 12}


class TestLookupResponse:
    def test_frame_key_order_and_compact(self) -> None:
        frame = LookupResponse(api="ipinfo", data={"country": "US"}, id="42").to_frame()
        assert frame == '{"api":"ipinfo","data":{"country":"US"},"id":"42"}'

    def test_id_absent_when_none(self) -> None:
        frame = LookupResponse(api="ipinfo", data=None).to_frame()
        assert json.loads(frame) == {"api": "ipinfo", "data": None}

    @pytest.mark.parametrize("data", [[1, 2], "text", 3.5, True, {"nested": {"a": [None]}}])
    def test_any_json_data_passed_through(self, data: object) -> None:
        assert json.loads(LookupResponse(api="nange", data=data).to_frame())["data"] == data


def test_encode_frame_keeps_non_ascii() -> None:
    assert encode_frame({"city": "São Paulo"}) == '{"city":"São Paulo"}'
