"""Search pipeline coordination."""

from jobinsight.pipeline.coordinator import PipelineCoordinator, build_coordinator
from jobinsight.pipeline.models import SearchResponse

__all__ = ["PipelineCoordinator", "SearchResponse", "build_coordinator"]
