"""Feature controllers: grid, bridge and filter stack."""

from variantlab.features.base import FeatureController
from variantlab.features.bridge import BridgeExplorer
from variantlab.features.filters import FilterStack
from variantlab.features.grid import GridExplorer

__all__ = ["BridgeExplorer", "FeatureController", "FilterStack", "GridExplorer"]
