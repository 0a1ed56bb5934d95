"""Goal-to-leads orchestration."""

from .manager import LeadDiscoveryPipeline

__all__ = ["LeadDiscoveryPipeline"]
