"""In-memory data mart built from a category snapshot series."""

from .archetypes import SalesArchetype, compute_brand_archetypes, percentile
from .builder import DataMart, MartBuildError, build_data_mart
from .products import IndexedProduct, ProductHistoryPoint
from .windows import WINDOW_SIZES, WindowSummary

__all__ = [
    "DataMart",
    "IndexedProduct",
    "MartBuildError",
    "ProductHistoryPoint",
    "SalesArchetype",
    "WINDOW_SIZES",
    "WindowSummary",
    "build_data_mart",
    "compute_brand_archetypes",
    "percentile",
]
