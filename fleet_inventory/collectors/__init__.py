"""Per-category remote fact collectors."""

from .fact_collector import FactCollector, default_collectors

__all__ = ["FactCollector", "default_collectors"]
