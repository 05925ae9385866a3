"""Tests for model profiles."""

from __future__ import annotations

import pytest

from variantlab.errors import UnknownModelError
from variantlab.providers.model_info import (
    DEFAULT_MODEL_ID,
    KNOWN_MODELS,
    available_models,
    get_model_profile,
)


def test_default_model_is_known() -> None:
    assert DEFAULT_MODEL_ID in KNOWN_MODELS


@pytest.mark.parametrize(
    ("model_id", "provider", "concurrency"),
    [
        ("haiku-4.5", "anthropic", 1),
        ("sonnet-4.5", "anthropic", 2),
        ("gemini-2.5-flash", "google", 4),
    ],
)
def test_profiles(model_id: str, provider: str, concurrency: int) -> None:
    profile = get_model_profile(model_id)
    assert profile.provider == provider
    assert profile.max_concurrency == concurrency


def test_gemini_backs_off_faster() -> None:
    gemini = get_model_profile("gemini-2.5-flash")
    haiku = get_model_profile("haiku-4.5")
    assert gemini.retry_base_delay < haiku.retry_base_delay
    assert gemini.overload_base_delay < haiku.overload_base_delay


def test_unknown_model() -> None:
    with pytest.raises(UnknownModelError) as exc_info:
        get_model_profile("gpt-9")
    assert "haiku-4.5" in str(exc_info.value)


@pytest.mark.parametrize(("value", "expected"), [("3", 3), ("0", 1), ("-2", 1), ("lots", 1)])
def test_concurrency_override(
    monkeypatch: pytest.MonkeyPatch, value: str, expected: int
) -> None:
    monkeypatch.setenv("VL_MAX_CONCURRENCY", value)
    assert get_model_profile("haiku-4.5").max_concurrency == expected


def test_available_models_order() -> None:
    assert available_models() == ["haiku-4.5", "sonnet-4.5", "gemini-2.5-flash"]
