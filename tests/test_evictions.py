"""
Test pod evictor budgets and eviction eligibility
"""

import pytest

from descheduler.api.errors import ConfigConflict
from descheduler.api.models import Node, OwnerReference, RunContext, StrategyParameters
from descheduler.evictions.evictions import (
    EvictorFilter,
    PodEvictor,
    SYSTEM_CRITICAL_PRIORITY,
    get_priority_threshold,
)


def test_node_budget(pod_factory, eviction_client):
    evictor = PodEvictor(eviction_client, max_pods_to_evict_per_node=2, metrics_enabled=False)
    node = Node(name="node1")
    ctx = RunContext()

    assert evictor.evict_pod(ctx, pod_factory("p1"))
    assert not evictor.node_limit_exceeded(node)
    assert evictor.evict_pod(ctx, pod_factory("p2"))
    assert evictor.node_limit_exceeded(node)

    # over budget: refused without calling the client
    assert not evictor.evict_pod(ctx, pod_factory("p3"))
    assert eviction_client.evicted == ["p1", "p2"]
    assert evictor.node_evicted(node) == 2


def test_namespace_budget(pod_factory, eviction_client):
    evictor = PodEvictor(eviction_client, max_pods_to_evict_per_namespace=1, metrics_enabled=False)
    ctx = RunContext()

    assert evictor.evict_pod(ctx, pod_factory("p1", namespace="a"))
    assert not evictor.evict_pod(ctx, pod_factory("p2", namespace="a"))
    assert evictor.evict_pod(ctx, pod_factory("p3", namespace="b"))
    assert evictor.total_evicted() == 2


def test_unlimited_budget_never_exceeded(pod_factory, eviction_client):
    evictor = PodEvictor(eviction_client, metrics_enabled=False)
    for i in range(10):
        assert evictor.evict_pod(RunContext(), pod_factory(f"p{i}"))
    assert not evictor.node_limit_exceeded(Node(name="node1"))


def test_failed_eviction_is_not_counted(pod_factory, client_factory):
    client = client_factory(refuse={"p1"}, raise_for={"p2"})
    evictor = PodEvictor(client, max_pods_to_evict_per_node=1, metrics_enabled=False)
    ctx = RunContext()

    assert not evictor.evict_pod(ctx, pod_factory("p1"))
    assert not evictor.evict_pod(ctx, pod_factory("p2"))
    assert evictor.total_evicted() == 0
    assert evictor.evict_pod(ctx, pod_factory("p3"))


def test_dry_run_counts_without_calling_client(pod_factory, eviction_client):
    evictor = PodEvictor(eviction_client, dry_run=True, max_pods_to_evict_per_node=1, metrics_enabled=False)

    assert evictor.evict_pod(RunContext(), pod_factory("p1"))
    assert eviction_client.evicted == []
    assert evictor.node_limit_exceeded(Node(name="node1"))


def test_cancelled_context_blocks_eviction(pod_factory, eviction_client):
    evictor = PodEvictor(eviction_client, metrics_enabled=False)
    ctx = RunContext()
    ctx.cancel()

    assert not evictor.evict_pod(ctx, pod_factory("p1"))
    assert eviction_client.evicted == []


def test_deadline_passed_as_request_timeout(pod_factory, eviction_client):
    evictor = PodEvictor(eviction_client, metrics_enabled=False)

    evictor.evict_pod(RunContext(timeout=30), pod_factory("p1"))
    evictor.evict_pod(RunContext(), pod_factory("p2"))

    assert 0 < eviction_client.timeouts[0] <= 30
    assert eviction_client.timeouts[1] is None


def test_metrics_recorded(pod_factory, eviction_client):
    evictor = PodEvictor(eviction_client)
    pod = pod_factory("p1", namespace="metrics-ns")
    counter = PodEvictor.pods_evicted.labels(
        result="success", strategy="test", namespace="metrics-ns", node="node1"
    )
    before = counter._value.get()

    evictor.evict_pod(RunContext(), pod, strategy="test")

    assert counter._value.get() == before + 1


# ── Eligibility ────────────────────────────────────────────────────────────

def test_regular_pod_is_eligible(pod_factory):
    assert EvictorFilter().filter(pod_factory("p1", priority=10))


@pytest.mark.parametrize("overrides", [
    {"owner_references": []},
    {"owner_references": [OwnerReference(kind="DaemonSet", name="ds")]},
    {"annotations": {"kubernetes.io/config.mirror": "abc"}},
    {"annotations": {"kubernetes.io/config.source": "file"}},
    {"has_local_storage": True},
    {"priority_class_name": "system-node-critical"},
    {"priority": SYSTEM_CRITICAL_PRIORITY},
])
def test_ineligible_pods(pod_factory, overrides):
    assert not EvictorFilter().filter(pod_factory("p1", **overrides))


def test_evict_annotation_overrides_checks(pod_factory):
    pod = pod_factory(
        "p1",
        owner_references=[],
        has_local_storage=True,
        annotations={"descheduler.alpha.kubernetes.io/evict": ""}
    )
    assert EvictorFilter().filter(pod)


def test_local_storage_and_critical_opt_in(pod_factory):
    evictor_filter = EvictorFilter(evict_local_storage_pods=True, evict_system_critical_pods=True)

    assert evictor_filter.filter(pod_factory("p1", has_local_storage=True))
    assert evictor_filter.filter(pod_factory("p2", priority_class_name="system-cluster-critical"))


def test_pvc_pods_ignored_when_configured(pod_factory):
    pod = pod_factory("p1", has_pvc=True)

    assert EvictorFilter().filter(pod)
    assert not EvictorFilter(ignore_pvc_pods=True).filter(pod)


def test_priority_threshold(pod_factory):
    evictor_filter = EvictorFilter(priority_threshold=1000)

    assert evictor_filter.filter(pod_factory("low", priority=999))
    assert not evictor_filter.filter(pod_factory("at", priority=1000))
    assert evictor_filter.filter(pod_factory("none"))


# ── Threshold resolution ───────────────────────────────────────────────────

def test_threshold_defaults_to_system_critical():
    assert get_priority_threshold(None) == SYSTEM_CRITICAL_PRIORITY
    assert get_priority_threshold(StrategyParameters()) == SYSTEM_CRITICAL_PRIORITY


def test_threshold_from_value_and_class():
    assert get_priority_threshold(StrategyParameters(threshold_priority=500)) == 500

    lookups = []

    def lookup(name):
        lookups.append(name)
        return 42

    params = StrategyParameters(threshold_priority_class_name="batch-low")
    assert get_priority_threshold(params, lookup) == 42
    assert lookups == ["batch-low"]


def test_threshold_conflict():
    params = StrategyParameters(threshold_priority=1, threshold_priority_class_name="x")
    with pytest.raises(ConfigConflict):
        get_priority_threshold(params, lambda name: 0)
