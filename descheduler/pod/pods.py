"""
Pod candidate filtering, listing and ordering
"""

from typing import Callable, Iterable, List, Optional, Set

from ..api.errors import FilterBuildError, ListError, SelectorCompileError
from ..api.models import (
    LabelSelector,
    Pod,
    QOS_BEST_EFFORT,
    QOS_BURSTABLE,
    QOS_GUARANTEED,
)
from ..utils.labels import label_selector_as_selector
from ..utils.logger import get_logger

logger = get_logger("PodUtil")

FilterFunc = Callable[[Pod], bool]
GetPodsAssignedToNodeFunc = Callable[[str, Optional[FilterFunc]], List[Pod]]

_QOS_RANK = {
    QOS_BEST_EFFORT: 0,
    QOS_BURSTABLE: 1,
    QOS_GUARANTEED: 2,
}


class Options:
    """
    Builder for a pod filter function

    Usage:
        pod_filter = Options().with_namespaces({"a"}).with_label_selector(sel).build_filter_func()
    """

    def __init__(self):
        self.filter: Optional[FilterFunc] = None
        self.included_namespaces: Set[str] = set()
        self.excluded_namespaces: Set[str] = set()
        self.label_selector: Optional[LabelSelector] = None

    def with_filter(self, filter_func: Optional[FilterFunc]) -> "Options":
        self.filter = filter_func
        return self

    def with_namespaces(self, namespaces: Optional[Iterable[str]]) -> "Options":
        self.included_namespaces = set(namespaces or ())
        return self

    def without_namespaces(self, namespaces: Optional[Iterable[str]]) -> "Options":
        self.excluded_namespaces = set(namespaces or ())
        return self

    def with_label_selector(self, label_selector: Optional[LabelSelector]) -> "Options":
        self.label_selector = label_selector
        return self

    def build_filter_func(self) -> FilterFunc:
        """
        Compose the configured restrictions into one predicate

        Returns:
            Callable returning True for pods that should be considered

        Raises:
            FilterBuildError: label selector could not be compiled
        """
        selector = None
        if self.label_selector is not None:
            try:
                selector = label_selector_as_selector(self.label_selector)
            except SelectorCompileError as e:
                raise FilterBuildError(f"invalid label selector: {e}") from e

        included = frozenset(self.included_namespaces)
        excluded = frozenset(self.excluded_namespaces)
        extra = self.filter

        def pod_filter(pod: Pod) -> bool:
            if extra is not None and not extra(pod):
                return False
            if included and pod.namespace not in included:
                return False
            if excluded and pod.namespace in excluded:
                return False
            if selector is not None and not selector.matches(pod.labels):
                return False
            return True

        return pod_filter


def list_pods_on_a_node(
    node_name: str,
    get_pods_assigned_to_node: GetPodsAssignedToNodeFunc,
    pod_filter: Optional[FilterFunc]
) -> List[Pod]:
    """
    List pods bound to a node that pass the filter

    Args:
        node_name: Node name
        get_pods_assigned_to_node: Lister collaborator
        pod_filter: Candidate filter (None accepts every pod)

    Returns:
        Mutable list of pods

    Raises:
        ListError: the lister failed
    """
    try:
        pods = get_pods_assigned_to_node(node_name, pod_filter)
    except Exception as e:
        raise ListError(node_name, e) from e

    pods = list(pods)
    logger.debug(f"Listed {len(pods)} candidate pods on node {node_name}")
    return pods


def _priority_sort_key(pod: Pod):
    # pods without priority sort first
    has_priority = pod.priority is not None
    return (has_priority, pod.priority if has_priority else 0, _QOS_RANK.get(pod.qos_class, 0))


def sort_pods_based_on_priority_low_to_high(pods: List[Pod]) -> None:
    """
    Stable in-place sort: ascending priority, equal priority by QoS tier
    (BestEffort, Burstable, Guaranteed). Pods with no priority come first.
    """
    pods.sort(key=_priority_sort_key)
