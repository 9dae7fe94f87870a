"""Market insight synthesis."""

from jobinsight.insights.synthesizer import (
    COMBINED_INSIGHT_TYPE,
    INSUFFICIENT_DATA_NARRATIVE,
    LISTING_INSIGHT_TYPE,
    InsightSynthesizer,
)

__all__ = [
    "COMBINED_INSIGHT_TYPE",
    "INSUFFICIENT_DATA_NARRATIVE",
    "LISTING_INSIGHT_TYPE",
    "InsightSynthesizer",
]
