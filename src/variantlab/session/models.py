"""Pydantic models for persisted feature sessions.

One session per feature namespace holds the inputs, the variant cache and
progress. A stored session whose inputs differ from a new setup is
discarded, never reused.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, Field, model_validator

from variantlab.filters.chain import ORIGINAL_KEY
from variantlab.filters.definitions import FilterLayer
from variantlab.providers.model_info import DEFAULT_MODEL_ID
from variantlab.spaces.bridge import LEFT_ANCHOR, RIGHT_ANCHOR


def _now() -> datetime:
    return datetime.now(timezone.utc)


class Adjectives(BaseModel):
    """The four grid axis labels."""

    x_positive: str = Field(default="", description="Adjective toward +x")
    x_negative: str = Field(default="", description="Adjective toward -x")
    y_positive: str = Field(default="", description="Adjective toward +y")
    y_negative: str = Field(default="", description="Adjective toward -y")

    def normalized(self) -> Adjectives:
        return Adjectives(
            x_positive=self.x_positive.strip(),
            x_negative=self.x_negative.strip(),
            y_positive=self.y_positive.strip(),
            y_negative=self.y_negative.strip(),
        )


class Progress(BaseModel):
    status: Literal["idle", "generating", "complete", "error"] = "idle"
    current_wave: int = Field(default=0, ge=0)
    total_generated: int = Field(default=0, ge=0)


class TokenUsage(BaseModel):
    input: int = Field(default=0, ge=0)
    output: int = Field(default=0, ge=0)

    def add(self, input_tokens: int | None, output_tokens: int | None) -> None:
        self.input += input_tokens or 0
        self.output += output_tokens or 0

    @property
    def total(self) -> int:
        return self.input + self.output


class LayerRecord(BaseModel):
    """Serialisable form of a FilterLayer."""

    filter_id: str
    intensity: int = 50
    enabled: bool = True

    def to_layer(self) -> FilterLayer:
        return FilterLayer(self.filter_id, self.intensity, self.enabled)  # type: ignore[arg-type]

    @classmethod
    def from_layer(cls, layer: FilterLayer) -> LayerRecord:
        return cls(
            filter_id=layer.filter_id.value, intensity=layer.intensity, enabled=layer.enabled
        )


class GridSession(BaseModel):
    """Adjective-grid session: one text rewritten at up to 121 coordinates."""

    type: Literal["grid"] = "grid"
    original_text: str
    adjectives: Adjectives
    model_id: str = DEFAULT_MODEL_ID
    cache: dict[str, str] = Field(default_factory=dict)
    progress: Progress = Field(default_factory=Progress)
    token_usage: TokenUsage = Field(default_factory=TokenUsage)
    last_modified: datetime = Field(default_factory=_now)

    def matches(self, text: str, adjectives: Adjectives, model_id: str) -> bool:
        return (
            self.original_text == text
            and self.adjectives == adjectives
            and self.model_id == model_id
        )


class BridgeSession(BaseModel):
    """Bridge session: anchors at positions 0 and 10, midpoints derived."""

    type: Literal["bridge"] = "bridge"
    text_a: str
    text_b: str
    model_id: str = DEFAULT_MODEL_ID
    cache: dict[str, str] = Field(default_factory=dict)
    progress: Progress = Field(default_factory=Progress)
    token_usage: TokenUsage = Field(default_factory=TokenUsage)
    last_modified: datetime = Field(default_factory=_now)

    @model_validator(mode="after")
    def _seed_anchors(self) -> BridgeSession:
        self.cache.setdefault(str(LEFT_ANCHOR), self.text_a)
        self.cache.setdefault(str(RIGHT_ANCHOR), self.text_b)
        return self

    def matches(self, text_a: str, text_b: str, model_id: str) -> bool:
        return self.text_a == text_a and self.text_b == text_b and self.model_id == model_id


class FilterSession(BaseModel):
    """Filter-stack session. ``layers`` is in visual order, disabled ones included."""

    type: Literal["filters"] = "filters"
    original_text: str
    model_id: str = DEFAULT_MODEL_ID
    layers: list[LayerRecord] = Field(default_factory=list)
    cache: dict[str, str] = Field(default_factory=dict)
    final_result: str | None = None
    token_usage: TokenUsage = Field(default_factory=TokenUsage)
    last_modified: datetime = Field(default_factory=_now)

    @model_validator(mode="after")
    def _seed_original(self) -> FilterSession:
        self.cache.setdefault(ORIGINAL_KEY, self.original_text)
        return self

    def matches(self, text: str, model_id: str) -> bool:
        return self.original_text == text and self.model_id == model_id
