"""
RemovePodsViolatingInterPodAntiAffinity strategy

Evicts pods that share a node with pods their required anti-affinity terms
forbid. Lowest priority pods go first; once a pod is evicted it no longer
counts as a conflict for the pods scanned after it.
"""

from typing import Callable, List, Optional, Sequence

from ..api.errors import ConfigConflict, FilterBuildError, ListError, SelectorCompileError
from ..api.models import (
    DeschedulerStrategy,
    Node,
    Pod,
    PodAffinityTerm,
    RunContext,
    StrategyParameters,
)
from ..evictions.evictions import PodEvictor
from ..pod.pods import (
    GetPodsAssignedToNodeFunc,
    Options,
    list_pods_on_a_node,
    sort_pods_based_on_priority_low_to_high,
)
from ..utils.labels import (
    get_namespaces_from_pod_affinity_term,
    label_selector_as_selector,
    pod_matches_terms_namespace_and_selector,
)
from ..utils.logger import get_logger

logger = get_logger("PodAntiAffinity")

STRATEGY_NAME = "RemovePodsViolatingInterPodAntiAffinity"


def validate_remove_pods_violating_inter_pod_anti_affinity_params(params: Optional[StrategyParameters]):
    """
    Reject self-contradictory parameters

    Raises:
        ConfigConflict: include and exclude namespaces, or both threshold
            priority forms, are set together
    """
    if params is None:
        return

    if params.namespaces is not None and params.namespaces.include and params.namespaces.exclude:
        raise ConfigConflict("only one of Include/Exclude namespaces can be set")
    if params.threshold_priority is not None and params.threshold_priority_class_name:
        raise ConfigConflict("only one of thresholdPriority and thresholdPriorityClassName can be set")


def get_pod_anti_affinity_terms(pod: Pod) -> List[PodAffinityTerm]:
    if pod.anti_affinity is None:
        return []
    return list(pod.anti_affinity.required_during_scheduling_ignored_during_execution)


def check_pods_with_anti_affinity_exist(pod: Pod, pods: Sequence[Pod]) -> bool:
    """
    Check whether another pod in `pods` is one `pod` cannot tolerate

    A term whose selector does not compile is logged and skipped.

    Args:
        pod: Pod whose required anti-affinity terms are evaluated
        pods: Current candidate set (may contain `pod` itself)

    Returns:
        True on the first conflicting pod found
    """
    for term in get_pod_anti_affinity_terms(pod):
        namespaces = get_namespaces_from_pod_affinity_term(pod, term)
        try:
            selector = label_selector_as_selector(term.label_selector)
        except SelectorCompileError as e:
            logger.error(f"Unable to convert LabelSelector into Selector: pod={pod.key}, error={e}")
            continue

        for existing_pod in pods:
            if existing_pod.name != pod.name and pod_matches_terms_namespace_and_selector(existing_pod, namespaces, selector):
                return True

    return False


def remove_pods_violating_inter_pod_anti_affinity(
    ctx: RunContext,
    strategy: DeschedulerStrategy,
    nodes: Sequence[Node],
    pod_evictor: PodEvictor,
    evictor_filter: Callable[[Pod], bool],
    get_pods_assigned_to_node: GetPodsAssignedToNodeFunc
):
    """
    Evict pods violating inter-pod anti-affinity, node by node

    Configuration and filter errors abort before any node is touched; a
    listing error aborts the remaining nodes. Evictions already issued stand.

    Args:
        ctx: Run context threaded into every eviction
        strategy: Strategy config (params may be None)
        nodes: Nodes to process, in order
        pod_evictor: Evictor holding the per-node budget
        evictor_filter: Eviction eligibility predicate
        get_pods_assigned_to_node: Lister of pods bound to a node
    """
    params = strategy.params
    try:
        validate_remove_pods_violating_inter_pod_anti_affinity_params(params)
    except ConfigConflict as e:
        logger.error(f"Invalid {STRATEGY_NAME} parameters: {e}")
        return

    included_namespaces = excluded_namespaces = None
    label_selector = None
    if params is not None:
        if params.namespaces is not None:
            included_namespaces = params.namespaces.include
            excluded_namespaces = params.namespaces.exclude
        label_selector = params.label_selector

    try:
        pod_filter = (Options()
                      .with_namespaces(included_namespaces)
                      .without_namespaces(excluded_namespaces)
                      .with_label_selector(label_selector)
                      .build_filter_func())
    except FilterBuildError as e:
        logger.error(f"Error initializing pod filter function: {e}")
        return

    for node in nodes:
        logger.info(f"Processing node: {node.name}")
        try:
            pods = list_pods_on_a_node(node.name, get_pods_assigned_to_node, pod_filter)
        except ListError as e:
            logger.error(f"{e}; aborting {STRATEGY_NAME}")
            return

        sort_pods_based_on_priority_low_to_high(pods)

        i = 0
        while i < len(pods):
            if ctx.cancelled:
                logger.warning(f"Run cancelled while processing node {node.name}")
                return

            pod = pods[i]
            if (check_pods_with_anti_affinity_exist(pod, pods) and evictor_filter(pod) and
                    pod_evictor.evict_pod(ctx, pod, STRATEGY_NAME)):
                # evicted pod no longer conflicts with the rest; rescan index i
                del pods[i]
            else:
                i += 1

            if pod_evictor.node_limit_exceeded(node):
                logger.info(f"Eviction limit reached on node {node.name}, moving on")
                break
