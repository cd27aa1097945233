"""
Pod filtering, listing and ordering helpers
"""

from .pods import Options, list_pods_on_a_node, sort_pods_based_on_priority_low_to_high

__all__ = ['Options', 'list_pods_on_a_node', 'sort_pods_based_on_priority_low_to_high']
