"""
Data models shared by the descheduler strategies
Pods and nodes are adapted from kubernetes client objects and never mutated
"""

import threading
import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional

# Pod QoS classes, lowest tier first
QOS_BEST_EFFORT = "BestEffort"
QOS_BURSTABLE = "Burstable"
QOS_GUARANTEED = "Guaranteed"

# Label selector operators
OP_IN = "In"
OP_NOT_IN = "NotIn"
OP_EXISTS = "Exists"
OP_DOES_NOT_EXIST = "DoesNotExist"


@dataclass(frozen=True)
class LabelSelectorRequirement:
    """Single matchExpressions entry"""
    key: str
    operator: str
    values: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class LabelSelector:
    """
    Label query over a set of objects

    matchLabels and matchExpressions are ANDed. An empty selector matches
    every object; a missing (None) selector matches nothing.
    """
    match_labels: Dict[str, str] = field(default_factory=dict)
    match_expressions: List[LabelSelectorRequirement] = field(default_factory=list)

    @classmethod
    def from_k8s(cls, selector) -> Optional["LabelSelector"]:
        if selector is None:
            return None
        return cls(
            match_labels=dict(selector.match_labels or {}),
            match_expressions=[
                LabelSelectorRequirement(
                    key=expr.key,
                    operator=expr.operator,
                    values=list(expr.values or [])
                )
                for expr in (selector.match_expressions or [])
            ]
        )

    @classmethod
    def from_dict(cls, data: Optional[Dict]) -> Optional["LabelSelector"]:
        """Build from the camelCase form used in policy files"""
        if data is None:
            return None
        return cls(
            match_labels=dict(data.get('matchLabels') or {}),
            match_expressions=[
                LabelSelectorRequirement(
                    key=expr.get('key'),
                    operator=expr.get('operator'),
                    values=list(expr.get('values') or [])
                )
                for expr in (data.get('matchExpressions') or [])
            ]
        )


@dataclass(frozen=True)
class PodAffinityTerm:
    """
    Anti-affinity term: pods matching label_selector in the given namespaces
    must not share a topology domain with the owning pod.
    An empty namespaces list means the owning pod's namespace.
    """
    label_selector: Optional[LabelSelector]
    namespaces: List[str] = field(default_factory=list)
    topology_key: str = ""

    @classmethod
    def from_k8s(cls, term) -> "PodAffinityTerm":
        return cls(
            label_selector=LabelSelector.from_k8s(term.label_selector),
            namespaces=list(term.namespaces or []),
            topology_key=term.topology_key or ""
        )


@dataclass(frozen=True)
class PodAntiAffinity:
    """Only the required terms are evaluated by the strategies"""
    required_during_scheduling_ignored_during_execution: List[PodAffinityTerm] = field(default_factory=list)
    preferred_during_scheduling_ignored_during_execution: List[PodAffinityTerm] = field(default_factory=list)

    @classmethod
    def from_k8s(cls, anti_affinity) -> Optional["PodAntiAffinity"]:
        if anti_affinity is None:
            return None
        required = [
            PodAffinityTerm.from_k8s(term)
            for term in (anti_affinity.required_during_scheduling_ignored_during_execution or [])
        ]
        preferred = [
            PodAffinityTerm.from_k8s(weighted.pod_affinity_term)
            for weighted in (anti_affinity.preferred_during_scheduling_ignored_during_execution or [])
        ]
        return cls(
            required_during_scheduling_ignored_during_execution=required,
            preferred_during_scheduling_ignored_during_execution=preferred
        )


@dataclass(frozen=True)
class OwnerReference:
    kind: str
    name: str


@dataclass
class Pod:
    """Pod as seen by the descheduler"""
    name: str
    namespace: str = "default"
    labels: Dict[str, str] = field(default_factory=dict)
    priority: Optional[int] = None
    qos_class: str = QOS_BEST_EFFORT
    anti_affinity: Optional[PodAntiAffinity] = None
    node_name: str = ""
    annotations: Dict[str, str] = field(default_factory=dict)
    owner_references: List[OwnerReference] = field(default_factory=list)
    priority_class_name: str = ""
    phase: str = "Running"
    has_local_storage: bool = False
    has_pvc: bool = False

    @property
    def key(self) -> str:
        return f"{self.namespace}/{self.name}"

    @classmethod
    def from_k8s(cls, pod) -> "Pod":
        """
        Adapt a kubernetes.client.V1Pod

        Args:
            pod: V1Pod returned by CoreV1Api

        Returns:
            Pod
        """
        metadata = pod.metadata
        spec = pod.spec
        status = pod.status

        anti_affinity = None
        if spec.affinity is not None:
            anti_affinity = PodAntiAffinity.from_k8s(spec.affinity.pod_anti_affinity)

        volumes = spec.volumes or []
        has_local_storage = any(
            v.empty_dir is not None or v.host_path is not None for v in volumes
        )
        has_pvc = any(v.persistent_volume_claim is not None for v in volumes)

        return cls(
            name=metadata.name,
            namespace=metadata.namespace,
            labels=dict(metadata.labels or {}),
            priority=spec.priority,
            qos_class=(status.qos_class if status and status.qos_class else QOS_BEST_EFFORT),
            anti_affinity=anti_affinity,
            node_name=spec.node_name or "",
            annotations=dict(metadata.annotations or {}),
            owner_references=[
                OwnerReference(kind=ref.kind, name=ref.name)
                for ref in (metadata.owner_references or [])
            ],
            priority_class_name=spec.priority_class_name or "",
            phase=(status.phase if status and status.phase else ""),
            has_local_storage=has_local_storage,
            has_pvc=has_pvc
        )

    def __repr__(self):
        return f"Pod({self.key}, priority={self.priority}, qos={self.qos_class})"


@dataclass
class Node:
    """Node identity used to scope pod listing and eviction budgets"""
    name: str
    labels: Dict[str, str] = field(default_factory=dict)
    unschedulable: bool = False
    ready: bool = True

    @classmethod
    def from_k8s(cls, node) -> "Node":
        conditions = (node.status.conditions or []) if node.status else []
        ready = any(c.type == "Ready" and c.status == "True" for c in conditions)
        return cls(
            name=node.metadata.name,
            labels=dict(node.metadata.labels or {}),
            unschedulable=bool(node.spec.unschedulable) if node.spec else False,
            ready=ready
        )


@dataclass
class Namespaces:
    include: List[str] = field(default_factory=list)
    exclude: List[str] = field(default_factory=list)


@dataclass
class StrategyParameters:
    """Parameters accepted by the strategies; see the validators for exclusivity rules"""
    namespaces: Optional[Namespaces] = None
    label_selector: Optional[LabelSelector] = None
    threshold_priority: Optional[int] = None
    threshold_priority_class_name: str = ""


@dataclass
class DeschedulerStrategy:
    enabled: bool = False
    params: Optional[StrategyParameters] = None


@dataclass
class DeschedulerPolicy:
    """Top level policy loaded from YAML"""
    strategies: Dict[str, DeschedulerStrategy] = field(default_factory=dict)
    node_selector: Optional[str] = None
    max_pods_to_evict_per_node: Optional[int] = None
    max_pods_to_evict_per_namespace: Optional[int] = None
    evict_local_storage_pods: bool = False
    evict_system_critical_pods: bool = False
    ignore_pvc_pods: bool = False
    descheduling_interval: int = 0


class RunContext:
    """
    Cancellation and deadline carrier passed explicitly to every eviction call

    Cancellation is cooperative: callers check `cancelled` and use
    `remaining()` as a request timeout.
    """

    def __init__(self, timeout: Optional[float] = None):
        self._event = threading.Event()
        self._deadline = time.monotonic() + timeout if timeout is not None else None

    def cancel(self):
        self._event.set()

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        return self._deadline is not None and time.monotonic() >= self._deadline

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline, None when there is none"""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def wait(self, seconds: float) -> bool:
        """Sleep up to `seconds`; returns True if cancelled meanwhile"""
        return self._event.wait(seconds)
