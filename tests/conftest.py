"""
Shared fixtures: pod factory and stand-in cluster collaborators
"""

import pytest

from descheduler.api.models import (
    LabelSelector,
    OwnerReference,
    Pod,
    PodAffinityTerm,
    PodAntiAffinity,
    QOS_BEST_EFFORT,
)


def make_pod(
    name,
    namespace="default",
    labels=None,
    priority=None,
    qos_class=QOS_BEST_EFFORT,
    anti_affine_to=None,
    anti_affinity_namespaces=None,
    node_name="node1",
    **kwargs
):
    """
    Build a ReplicaSet-owned pod; `anti_affine_to` is a matchLabels dict
    turned into a single required anti-affinity term
    """
    anti_affinity = None
    if anti_affine_to is not None:
        anti_affinity = PodAntiAffinity(
            required_during_scheduling_ignored_during_execution=[
                PodAffinityTerm(
                    label_selector=LabelSelector(match_labels=anti_affine_to),
                    namespaces=list(anti_affinity_namespaces or []),
                    topology_key="kubernetes.io/hostname"
                )
            ]
        )

    kwargs.setdefault("owner_references", [OwnerReference(kind="ReplicaSet", name=f"{name}-rs")])

    return Pod(
        name=name,
        namespace=namespace,
        labels=dict(labels or {}),
        priority=priority,
        qos_class=qos_class,
        anti_affinity=anti_affinity,
        node_name=node_name,
        **kwargs
    )


class FakeEvictionClient:
    """Records evictions; pods named in `refuse` are not evicted"""

    def __init__(self, refuse=(), raise_for=()):
        self.refuse = set(refuse)
        self.raise_for = set(raise_for)
        self.evicted = []
        self.timeouts = []

    def evict_pod(self, pod, timeout=None):
        self.timeouts.append(timeout)
        if pod.name in self.raise_for:
            raise RuntimeError("connection reset")
        if pod.name in self.refuse:
            return False
        self.evicted.append(pod.name)
        return True


class FakePodLister:
    """Serves pods per node; nodes listed in `fail_on` raise"""

    def __init__(self, pods_by_node, fail_on=()):
        self.pods_by_node = pods_by_node
        self.fail_on = set(fail_on)
        self.calls = []

    def __call__(self, node_name, pod_filter=None):
        self.calls.append(node_name)
        if node_name in self.fail_on:
            raise RuntimeError(f"apiserver unavailable for {node_name}")
        pods = self.pods_by_node.get(node_name, [])
        return [p for p in pods if pod_filter is None or pod_filter(p)]


@pytest.fixture
def eviction_client():
    return FakeEvictionClient()


@pytest.fixture
def pod_factory():
    return make_pod


@pytest.fixture
def lister_factory():
    return FakePodLister


@pytest.fixture
def client_factory():
    return FakeEvictionClient
