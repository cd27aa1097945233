"""
Pod eviction with per-node and per-namespace budgets
Eligibility filtering for eviction candidates
"""

from typing import Callable, Dict, Optional

from prometheus_client import Counter

from ..api.errors import ConfigConflict
from ..api.models import Node, Pod, RunContext, StrategyParameters
from ..utils.logger import get_logger

logger = get_logger("PodEvictor")

# Highest user-definable priority; system-critical classes sit above it
SYSTEM_CRITICAL_PRIORITY = 2 * 1_000_000_000
SYSTEM_CRITICAL_PRIORITY_CLASSES = ("system-cluster-critical", "system-node-critical")

EVICT_POD_ANNOTATION_KEY = "descheduler.alpha.kubernetes.io/evict"
MIRROR_POD_ANNOTATION_KEY = "kubernetes.io/config.mirror"
CONFIG_SOURCE_ANNOTATION_KEY = "kubernetes.io/config.source"


class PodEvictor:
    """
    Issues evictions through a client and tracks how many pods were evicted
    per node and per namespace during one descheduling cycle

    The client must provide `evict_pod(pod, timeout=None) -> bool`.
    """

    pods_evicted = Counter(
        'descheduler_pods_evicted',
        'Number of pods evicted by the descheduler',
        ['result', 'strategy', 'namespace', 'node']
    )

    def __init__(
        self,
        client,
        dry_run: bool = False,
        max_pods_to_evict_per_node: Optional[int] = None,
        max_pods_to_evict_per_namespace: Optional[int] = None,
        metrics_enabled: bool = True
    ):
        """
        Initialize pod evictor

        Args:
            client: Eviction client (KubernetesClient or a stand-in)
            dry_run: Log and count evictions without calling the client
            max_pods_to_evict_per_node: Per-node budget (None = unlimited)
            max_pods_to_evict_per_namespace: Per-namespace budget (None = unlimited)
            metrics_enabled: Record the descheduler_pods_evicted counter
        """
        self.client = client
        self.dry_run = dry_run
        self.max_pods_to_evict_per_node = max_pods_to_evict_per_node
        self.max_pods_to_evict_per_namespace = max_pods_to_evict_per_namespace
        self.metrics_enabled = metrics_enabled

        self.node_pod_count: Dict[str, int] = {}
        self.namespace_pod_count: Dict[str, int] = {}

    def node_evicted(self, node: Node) -> int:
        """Number of pods evicted from the node"""
        return self.node_pod_count.get(node.name, 0)

    def total_evicted(self) -> int:
        return sum(self.node_pod_count.values())

    def node_limit_exceeded(self, node: Node) -> bool:
        """True once the node's eviction budget is used up"""
        if self.max_pods_to_evict_per_node is None:
            return False
        return self.node_evicted(node) >= self.max_pods_to_evict_per_node

    def _record(self, result: str, strategy: str, pod: Pod):
        if self.metrics_enabled:
            self.pods_evicted.labels(
                result=result,
                strategy=strategy,
                namespace=pod.namespace,
                node=pod.node_name
            ).inc()

    def evict_pod(self, ctx: RunContext, pod: Pod, strategy: str = "") -> bool:
        """
        Evict a pod unless a budget forbids it

        Args:
            ctx: Run context; a cancelled context prevents the call
            pod: Pod to evict
            strategy: Strategy name, used for logs and metrics

        Returns:
            True only on confirmed (or dry-run) eviction
        """
        node_name = pod.node_name

        if (self.max_pods_to_evict_per_node is not None and
                self.node_pod_count.get(node_name, 0) + 1 > self.max_pods_to_evict_per_node):
            self._record("maximum number of pods per node reached", strategy, pod)
            logger.warning(f"Maximum number of evicted pods per node reached: "
                           f"limit={self.max_pods_to_evict_per_node}, node={node_name}")
            return False

        if (self.max_pods_to_evict_per_namespace is not None and
                self.namespace_pod_count.get(pod.namespace, 0) + 1 > self.max_pods_to_evict_per_namespace):
            self._record("maximum number of pods per namespace reached", strategy, pod)
            logger.warning(f"Maximum number of evicted pods per namespace reached: "
                           f"limit={self.max_pods_to_evict_per_namespace}, namespace={pod.namespace}")
            return False

        if ctx.cancelled:
            logger.warning(f"Run cancelled, not evicting {pod.key}")
            return False

        if self.dry_run:
            logger.info(f"Evicted pod in dry run mode: pod={pod.key}, strategy={strategy}, node={node_name}")
        else:
            try:
                evicted = self.client.evict_pod(pod, timeout=ctx.remaining())
            except Exception as e:
                logger.error(f"Error evicting pod {pod.key}: {e}")
                evicted = False

            if not evicted:
                self._record("error", strategy, pod)
                return False

            logger.info(f"Evicted pod: pod={pod.key}, strategy={strategy}, node={node_name}")

        self.node_pod_count[node_name] = self.node_pod_count.get(node_name, 0) + 1
        self.namespace_pod_count[pod.namespace] = self.namespace_pod_count.get(pod.namespace, 0) + 1
        self._record("success", strategy, pod)
        return True


def get_priority_threshold(
    params: Optional[StrategyParameters],
    priority_class_lookup: Optional[Callable[[str], int]] = None
) -> int:
    """
    Resolve the threshold priority configured for a strategy

    Args:
        params: Strategy parameters (None -> default)
        priority_class_lookup: Returns the value of a PriorityClass by name

    Returns:
        Priority at and above which pods are not evicted

    Raises:
        ConfigConflict: both threshold forms are set
    """
    if params is None:
        return SYSTEM_CRITICAL_PRIORITY

    if params.threshold_priority is not None and params.threshold_priority_class_name:
        raise ConfigConflict("only one of thresholdPriority and thresholdPriorityClassName can be set")

    if params.threshold_priority is not None:
        return params.threshold_priority

    if params.threshold_priority_class_name:
        if priority_class_lookup is None:
            raise ValueError("a priority class lookup is required to resolve thresholdPriorityClassName")
        return priority_class_lookup(params.threshold_priority_class_name)

    return SYSTEM_CRITICAL_PRIORITY


class EvictorFilter:
    """
    Decides whether a pod may be evicted at all, independent of budgets
    """

    def __init__(
        self,
        evict_local_storage_pods: bool = False,
        evict_system_critical_pods: bool = False,
        ignore_pvc_pods: bool = False,
        priority_threshold: Optional[int] = None
    ):
        self.evict_local_storage_pods = evict_local_storage_pods
        self.evict_system_critical_pods = evict_system_critical_pods
        self.ignore_pvc_pods = ignore_pvc_pods
        self.priority_threshold = priority_threshold

    def _reject_reason(self, pod: Pod) -> Optional[str]:
        if not pod.owner_references:
            return "pod does not have any ownerRefs"
        if pod.annotations.get(MIRROR_POD_ANNOTATION_KEY):
            return "pod is a mirror pod"
        if pod.annotations.get(CONFIG_SOURCE_ANNOTATION_KEY, "api") != "api":
            return "pod is a static pod"
        if any(ref.kind == "DaemonSet" for ref in pod.owner_references):
            return "pod is a DaemonSet pod"
        if pod.has_local_storage and not self.evict_local_storage_pods:
            return "pod has local storage and descheduler is not configured with evictLocalStoragePods"
        if pod.has_pvc and self.ignore_pvc_pods:
            return "pod has a PVC and descheduler is configured to ignore PVC pods"

        critical = (
            pod.priority_class_name in SYSTEM_CRITICAL_PRIORITY_CLASSES or
            (pod.priority is not None and pod.priority >= SYSTEM_CRITICAL_PRIORITY)
        )
        if critical and not self.evict_system_critical_pods:
            return "pod is critical and descheduler is not configured with evictSystemCriticalPods"

        if (not self.evict_system_critical_pods and self.priority_threshold is not None and
                pod.priority is not None and pod.priority >= self.priority_threshold):
            return f"pod has higher priority than specified priority class threshold {self.priority_threshold}"

        return None

    def filter(self, pod: Pod) -> bool:
        """True if the pod is eligible for eviction"""
        if pod.annotations.get(EVICT_POD_ANNOTATION_KEY) is not None:
            return True

        reason = self._reject_reason(pod)
        if reason is not None:
            logger.debug(f"Pod lacks an eviction annotation and fails the following checks: pod={pod.key}, reason={reason}")
            return False
        return True
