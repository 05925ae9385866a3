"""Session persistence: models, cache binding and storage backends."""

from variantlab.session.cache import VariantCache
from variantlab.session.models import (
    Adjectives,
    BridgeSession,
    FilterSession,
    GridSession,
    LayerRecord,
    Progress,
    TokenUsage,
)
from variantlab.session.store import (
    NAMESPACES,
    FallbackSessionStore,
    MemorySessionStore,
    SessionStore,
    SqliteSessionStore,
    load_session,
    open_session_store,
    save_session,
)

__all__ = [
    "NAMESPACES",
    "Adjectives",
    "BridgeSession",
    "FallbackSessionStore",
    "FilterSession",
    "GridSession",
    "LayerRecord",
    "MemorySessionStore",
    "Progress",
    "SessionStore",
    "SqliteSessionStore",
    "TokenUsage",
    "VariantCache",
    "load_session",
    "open_session_store",
    "save_session",
]
