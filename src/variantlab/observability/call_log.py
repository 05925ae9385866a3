"""JSONL log of generator calls.

Writes one entry per TextGenerator call to ``generation_calls.jsonl``.
Prompts and responses are never truncated.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from pathlib import Path


@dataclass
class GenerationLogEntry:
    """Entry for generator call logging."""

    timestamp: str
    feature: str
    model: str

    prompt: str
    text: str
    duration_seconds: float

    # None when the provider doesn't report usage
    input_tokens: int | None = None
    output_tokens: int | None = None

    error: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


class GenerationCallLogger:
    """Append-only JSONL logger for generator calls.

    Attributes:
        log_path: Path to the JSONL log file.
        enabled: Whether logging is enabled.
    """

    def __init__(self, log_dir: Path, enabled: bool = True) -> None:
        self.enabled = enabled
        self.log_path = log_dir / "generation_calls.jsonl"
        if enabled:
            self.log_path.parent.mkdir(parents=True, exist_ok=True)

    def log(self, entry: GenerationLogEntry) -> None:
        """Append an entry to the JSONL log."""
        if not self.enabled:
            return

        with self.log_path.open("a", encoding="utf-8") as f:
            f.write(json.dumps(asdict(entry)) + "\n")

    @staticmethod
    def create_entry(
        feature: str,
        model: str,
        prompt: str,
        text: str,
        duration_seconds: float,
        input_tokens: int | None = None,
        output_tokens: int | None = None,
        error: str | None = None,
        **metadata: Any,
    ) -> GenerationLogEntry:
        """Create a log entry stamped with the current time."""
        return GenerationLogEntry(
            timestamp=datetime.now(UTC).isoformat(),
            feature=feature,
            model=model,
            prompt=prompt,
            text=text,
            duration_seconds=duration_seconds,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            error=error,
            metadata=dict(metadata),
        )

    def read_entries(self) -> list[GenerationLogEntry]:
        """Read all entries from the log file."""
        if not self.log_path.exists():
            return []

        entries = []
        with self.log_path.open(encoding="utf-8") as f:
            for line in f:
                if line.strip():
                    entries.append(GenerationLogEntry(**json.loads(line)))
        return entries
