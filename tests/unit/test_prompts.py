"""Tests for prompt loading and construction."""

from __future__ import annotations

from pathlib import Path

import pytest

from variantlab.errors import InvalidIntensityError, UnknownFilterError
from variantlab.filters.definitions import FilterId
from variantlab.prompts import (
    PromptLoader,
    TemplateNotFoundError,
    TemplateParseError,
    build_bridge_prompt,
    build_filter_prompt,
    build_grid_prompt,
    substitute,
)
from variantlab.session.models import Adjectives

ADJ = Adjectives(x_positive="formal", x_negative="casual", y_positive="happy", y_negative="sad")
TEXT = "The meeting moved to Thursday afternoon because the room was double-booked."


class TestPromptLoader:
    def test_bundled_templates(self) -> None:
        loader = PromptLoader()
        assert loader.list_templates() == ["bridge", "filter", "grid", "grid_center"]

    def test_filter_template_has_every_instruction(self) -> None:
        template = PromptLoader().load("filter")
        assert set(template.instructions) == {f.value for f in FilterId}

    def test_load_is_cached(self) -> None:
        loader = PromptLoader()
        assert loader.load("grid") is loader.load("grid")
        loader.clear_cache()
        assert loader._cache == {}

    def test_missing_template(self, tmp_path: Path) -> None:
        with pytest.raises(TemplateNotFoundError):
            PromptLoader(tmp_path).load("nope")

    def test_non_mapping_template(self, tmp_path: Path) -> None:
        (tmp_path / "broken.yaml").write_text("- just\n- a list\n")
        with pytest.raises(TemplateParseError):
            PromptLoader(tmp_path).load("broken")

    def test_list_templates_missing_dir(self, tmp_path: Path) -> None:
        assert PromptLoader(tmp_path / "absent").list_templates() == []


def test_substitute_leaves_unknown_and_does_not_rescan() -> None:
    result = substitute("{{ a }} {{ b }}", {"a": "{{ b }}"})
    assert result == "{{ b }} {{ b }}"


class TestGridPrompt:
    def test_origin_asks_for_verbatim_text(self) -> None:
        prompt = build_grid_prompt(TEXT, "0,0", ADJ)
        assert "exactly as written" in prompt
        assert TEXT in prompt

    def test_single_axis(self) -> None:
        prompt = build_grid_prompt(TEXT, "2,0", ADJ)
        assert "to be moderately more formal." in prompt
        assert "happy" not in prompt

    def test_negative_direction_and_distance(self) -> None:
        prompt = build_grid_prompt(TEXT, "-5,0", ADJ)
        assert "extremely more casual" in prompt

    def test_y_comes_before_x(self) -> None:
        prompt = build_grid_prompt(TEXT, "1,-3", ADJ)
        assert "strongly more sad and slightly more formal" in prompt

    def test_accepts_coordinate_key_with_text(self) -> None:
        assert TEXT in build_grid_prompt(TEXT, "4,4", ADJ)


def test_bridge_prompt_contains_both_texts() -> None:
    prompt = build_bridge_prompt("LEFT TEXT", "RIGHT TEXT")
    assert prompt.index("LEFT TEXT") < prompt.index("RIGHT TEXT")
    assert "50/50 blend" in prompt


class TestFilterPrompt:
    def test_intensity_word_and_text(self) -> None:
        prompt = build_filter_prompt(TEXT, FilterId.HUMOR, 75)
        assert "Add strongly more humor" in prompt
        assert TEXT in prompt

    def test_string_filter_id(self) -> None:
        assert "extremely simpler" in build_filter_prompt(TEXT, "simplify", 100)

    def test_rejects_unknown_filter(self) -> None:
        with pytest.raises(UnknownFilterError):
            build_filter_prompt(TEXT, "sarcasm", 50)

    def test_rejects_bad_intensity(self) -> None:
        with pytest.raises(InvalidIntensityError):
            build_filter_prompt(TEXT, "humor", 60)
