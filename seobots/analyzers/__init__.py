"""Category analyzers, one bot per analysis dimension."""

from .accessibility import AccessibilityAnalyzer
from .base import BaseAnalyzer
from .content import ContentAnalyzer
from .mobile import MobileAnalyzer
from .performance import PerformanceAnalyzer
from .security import SecurityAnalyzer
from .technical import TechnicalAnalyzer

# Registry in bot slot order (matches models.CATEGORIES)
ALL_ANALYZERS = {
    analyzer.name: analyzer
    for analyzer in (
        TechnicalAnalyzer,
        ContentAnalyzer,
        PerformanceAnalyzer,
        MobileAnalyzer,
        SecurityAnalyzer,
        AccessibilityAnalyzer,
    )
}

__all__ = [
    "ALL_ANALYZERS",
    "AccessibilityAnalyzer",
    "BaseAnalyzer",
    "ContentAnalyzer",
    "MobileAnalyzer",
    "PerformanceAnalyzer",
    "SecurityAnalyzer",
    "TechnicalAnalyzer",
]
