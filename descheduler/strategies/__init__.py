"""
Descheduler strategies
"""

from .pod_antiaffinity import (
    remove_pods_violating_inter_pod_anti_affinity,
    check_pods_with_anti_affinity_exist,
    validate_remove_pods_violating_inter_pod_anti_affinity_params,
)

__all__ = [
    'remove_pods_violating_inter_pod_anti_affinity',
    'check_pods_with_anti_affinity_exist',
    'validate_remove_pods_violating_inter_pod_anti_affinity_params',
]
