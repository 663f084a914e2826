"""Where the visitor came from and how to recognise them downstream."""

from .context import UtmParams, VisitorContext
from .tracking import TrackingCollector, TrackingData
from .variant import LandingVariant, VariantResolver, VariantTag

__all__ = [
    "LandingVariant",
    "TrackingCollector",
    "TrackingData",
    "UtmParams",
    "VariantResolver",
    "VariantTag",
    "VisitorContext",
]
