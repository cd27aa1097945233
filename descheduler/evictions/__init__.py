"""
Pod eviction and eviction eligibility
"""

from .evictions import PodEvictor, EvictorFilter, get_priority_threshold

__all__ = ['PodEvictor', 'EvictorFilter', 'get_priority_threshold']
