from storycraft.acquisition.tiers import enrichment, fallback, standard
from storycraft.acquisition.tiers.base import FallbackTier, PipelineOptions, TierContext, timer

__all__ = ["enrichment", "fallback", "standard", "FallbackTier", "PipelineOptions", "TierContext", "timer"]
