"""
Kubernetes API access
"""

from .client import KubernetesClient

__all__ = ['KubernetesClient']
