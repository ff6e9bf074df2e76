"""Unit tests for generator request validation and exception normalization."""

from __future__ import annotations

import asyncio

import pytest

from figbind.domain.errors import (
    GeneratorAuthError,
    GeneratorError,
    GeneratorRateLimitError,
    GeneratorTimeoutError,
    GeneratorTransportError,
)
from figbind.synthesis_plane.generator import GenerationRequest, map_generator_exception


class _StatusError(Exception):
    def __init__(self, message: str, status_code: int) -> None:
        super().__init__(message)
        self.status_code = status_code


class _Response:
    def __init__(self, status_code: int) -> None:
        self.status_code = status_code


class _ResponseError(Exception):
    def __init__(self, message: str, status_code: int) -> None:
        super().__init__(message)
        self.response = _Response(status_code)


class RateLimitError(Exception):
    pass


class PermissionDeniedError(Exception):
    pass


class APITimeoutError(Exception):
    pass


def test_status_codes_map_to_error_family() -> None:
    auth = map_generator_exception(_StatusError("bad key", 401))
    assert isinstance(auth, GeneratorAuthError)
    assert (auth.code, auth.retryable, auth.detail) == ("auth", False, "bad key")

    forbidden = map_generator_exception(_StatusError("nope", 403))
    assert isinstance(forbidden, GeneratorAuthError)

    limited = map_generator_exception(_ResponseError("slow down", 429))
    assert isinstance(limited, GeneratorRateLimitError)
    assert limited.retryable is True


def test_class_names_map_to_error_family() -> None:
    assert isinstance(map_generator_exception(RateLimitError("x")), GeneratorRateLimitError)
    assert isinstance(map_generator_exception(PermissionDeniedError("x")), GeneratorAuthError)
    assert isinstance(map_generator_exception(APITimeoutError("x")), GeneratorTimeoutError)


def test_asyncio_timeout_uses_class_name_as_detail() -> None:
    error = map_generator_exception(asyncio.TimeoutError())

    assert isinstance(error, GeneratorTimeoutError)
    assert error.code == "timeout"
    assert error.detail == "TimeoutError"


def test_unknown_exceptions_are_transport_errors() -> None:
    error = map_generator_exception(ConnectionError("connection   reset\nby peer"))

    assert isinstance(error, GeneratorTransportError)
    assert error.code == "transport"
    assert error.detail == "connection reset by peer"
    assert str(error) == "code=transport retryable=true detail=connection reset by peer"


def test_generator_errors_pass_through_unchanged() -> None:
    original = GeneratorRateLimitError("quota")

    assert map_generator_exception(original) is original
    assert isinstance(original, GeneratorError)


def test_generation_request_requires_positive_token_ceiling() -> None:
    with pytest.raises(ValueError):
        GenerationRequest(system_prompt="s", user_prompt="u", max_tokens=0)

    request = GenerationRequest(system_prompt="s", user_prompt="u", max_tokens=64, label="x")
    assert request.to_dict() == {
        "system_prompt": "s",
        "user_prompt": "u",
        "max_tokens": 64,
        "label": "x",
    }
