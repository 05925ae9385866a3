"""Domain error types.

Validation errors are raised before any generator call is made. Each error
is a dataclass carrying the offending value so callers (and the CLI) can
render a precise message without parsing strings.
"""

from __future__ import annotations

from dataclasses import dataclass, field


class VariantLabError(Exception):
    """Base class for all variantlab errors."""


class ValidationError(VariantLabError):
    """Input rejected before any network call."""


@dataclass
class InvalidCoordinateError(ValidationError):
    """Raised for malformed or out-of-range grid coordinates."""

    value: object
    reason: str = "expected 'x,y' with integers in [-5, 5]"

    def __post_init__(self) -> None:
        super().__init__(f"Invalid coordinate {self.value!r}: {self.reason}")


@dataclass
class InvalidPositionError(ValidationError):
    """Raised for bridge positions outside the derived range."""

    position: object
    valid: str = "1-9"

    def __post_init__(self) -> None:
        super().__init__(f"Invalid bridge position {self.position!r} (valid: {self.valid})")


@dataclass
class InvalidIntensityError(ValidationError):
    """Raised for filter intensities other than 25, 50, 75 or 100."""

    intensity: object

    def __post_init__(self) -> None:
        super().__init__(
            f"Invalid intensity {self.intensity!r}. Must be 25, 50, 75, or 100."
        )


@dataclass
class UnknownFilterError(ValidationError):
    """Raised when a filter id is not one of the known filter kinds."""

    filter_id: object
    available: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        msg = f"Unknown filter: {self.filter_id!r}"
        if self.available:
            msg += f" (available: {', '.join(self.available)})"
        super().__init__(msg)


@dataclass
class UnknownModelError(ValidationError):
    """Raised when a model id has no registered profile."""

    model_id: object
    available: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        msg = f"Invalid model selection: {self.model_id!r}"
        if self.available:
            msg += f" (available: {', '.join(self.available)})"
        super().__init__(msg)


@dataclass
class InvalidCacheKeyError(ValidationError):
    """Raised when a filter-stack cache key cannot be parsed."""

    key: str
    reason: str = ""

    def __post_init__(self) -> None:
        msg = f"Invalid cache key {self.key!r}"
        if self.reason:
            msg += f": {self.reason}"
        super().__init__(msg)


@dataclass
class InvalidInputError(ValidationError):
    """Raised when setup inputs fail validation.

    Attributes:
        problems: Every problem found, in form order.
    """

    problems: list[str]

    def __post_init__(self) -> None:
        super().__init__("; ".join(self.problems))


@dataclass
class DependencyNotReadyError(VariantLabError):
    """Raised when a task runs before the text it derives from exists.

    Reaching this means the plan was built or ordered incorrectly, or an
    upstream task failed; the task is failed rather than generated from
    missing input.
    """

    key: str
    missing: str

    def __post_init__(self) -> None:
        super().__init__(f"Cannot generate '{self.key}': dependency '{self.missing}' not ready")


@dataclass
class RetriesExhaustedError(VariantLabError):
    """Raised when every attempt for a task failed with a retryable error."""

    key: str
    attempts: int
    last_error: str

    def __post_init__(self) -> None:
        super().__init__(
            f"Failed to generate '{self.key}' after {self.attempts} attempts: {self.last_error}"
        )


@dataclass
class ChainStepFailedError(VariantLabError):
    """Raised when a filter-stack step fails, halting every step above it.

    Attributes:
        step: 1-based step number within the executed plan.
        key: Cache key the failed step would have produced.
        reason: Error message from the failed step.
    """

    step: int
    key: str
    reason: str

    def __post_init__(self) -> None:
        super().__init__(f"Generation failed at step {self.step} ({self.key}): {self.reason}")


@dataclass
class SessionNotInitializedError(VariantLabError):
    """Raised when a feature is used before ``setup()``."""

    feature: str

    def __post_init__(self) -> None:
        super().__init__(f"No {self.feature} session; call setup() first")


@dataclass
class StorageUnavailableError(VariantLabError):
    """Raised by a session store whose backend cannot be used.

    Callers degrade to an in-memory store; this is never fatal.
    """

    backend: str
    reason: str

    def __post_init__(self) -> None:
        super().__init__(f"Session storage '{self.backend}' unavailable: {self.reason}")
