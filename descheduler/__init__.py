"""
Descheduler - inter-pod anti-affinity rebalancing for Kubernetes
"""

__version__ = "0.1.0"
