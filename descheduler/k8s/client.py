"""
Kubernetes client for node listing, pod listing and pod eviction
"""

import os
from typing import Callable, List, Optional

from kubernetes import client, config
from kubernetes.client.rest import ApiException

from ..api.models import Node, Pod
from ..utils.logger import get_logger

logger = get_logger("K8sClient")


class KubernetesClient:
    """
    Thin wrapper over CoreV1Api / PolicyV1Api / SchedulingV1Api
    returning descheduler models
    """

    def __init__(
        self,
        kubeconfig_path: Optional[str] = None,
        context: Optional[str] = None,
        in_cluster: bool = False,
        api_client: Optional[client.ApiClient] = None
    ):
        """
        Initialize K8s client

        Args:
            kubeconfig_path: Path to kubeconfig (default loader rules if None)
            context: Kubeconfig context name
            in_cluster: Use the service account mounted in the pod
            api_client: Pre-built ApiClient (skips config loading)
        """
        if api_client is None:
            api_client = self._init_api_client(kubeconfig_path, context, in_cluster)

        self.core_api = client.CoreV1Api(api_client=api_client)
        self.policy_api = client.PolicyV1Api(api_client=api_client)
        self.scheduling_api = client.SchedulingV1Api(api_client=api_client)

    def _init_api_client(
        self,
        kubeconfig_path: Optional[str],
        context: Optional[str],
        in_cluster: bool
    ) -> client.ApiClient:
        if in_cluster:
            config.load_incluster_config()
            logger.info("✅ Initialized in-cluster K8s client")
            return client.ApiClient()

        if kubeconfig_path:
            kubeconfig_path = os.path.expanduser(kubeconfig_path)

        api_client = config.new_client_from_config(
            config_file=kubeconfig_path,
            context=context
        )
        logger.info(f"✅ Initialized K8s client from {kubeconfig_path or 'default kubeconfig'}")
        return api_client

    def list_ready_nodes(self, node_selector: Optional[str] = None) -> List[Node]:
        """
        List schedulable, Ready nodes

        Args:
            node_selector: Label selector string (e.g. "pool=workers")

        Returns:
            List of Node
        """
        kwargs = {}
        if node_selector:
            kwargs['label_selector'] = node_selector

        node_list = self.core_api.list_node(**kwargs)

        nodes = []
        for item in node_list.items:
            node = Node.from_k8s(item)
            if node.unschedulable:
                logger.debug(f"Ignoring node {node.name}: unschedulable")
                continue
            if not node.ready:
                logger.debug(f"Ignoring node {node.name}: not ready")
                continue
            nodes.append(node)

        return nodes

    def get_pods_assigned_to_node(
        self,
        node_name: str,
        pod_filter: Optional[Callable[[Pod], bool]] = None
    ) -> List[Pod]:
        """
        List pods bound to a node, skipping terminated ones

        Args:
            node_name: Node name
            pod_filter: Optional predicate applied to each pod

        Returns:
            List of Pod

        Raises:
            ApiException: listing failed
        """
        field_selector = f"spec.nodeName={node_name},status.phase!=Succeeded,status.phase!=Failed"
        pod_list = self.core_api.list_pod_for_all_namespaces(field_selector=field_selector)

        pods = []
        for item in pod_list.items:
            pod = Pod.from_k8s(item)
            if pod_filter is None or pod_filter(pod):
                pods.append(pod)
        return pods

    def evict_pod(self, pod: Pod, timeout: Optional[float] = None) -> bool:
        """
        Create an Eviction for the pod

        Args:
            pod: Pod to evict
            timeout: Request timeout in seconds

        Returns:
            True if the API accepted the eviction
        """
        body = client.V1Eviction(
            metadata=client.V1ObjectMeta(
                name=pod.name,
                namespace=pod.namespace
            )
        )

        kwargs = {}
        if timeout is not None:
            kwargs['_request_timeout'] = timeout

        try:
            self.policy_api.create_namespaced_pod_eviction(
                name=pod.name,
                namespace=pod.namespace,
                body=body,
                **kwargs
            )
            return True

        except ApiException as e:
            if e.status == 404:
                logger.info(f"Pod {pod.key} not found, nothing to evict")
            elif e.status == 429:
                logger.warning(f"Eviction of {pod.key} refused by a disruption budget: {e.reason}")
            else:
                logger.error(f"K8s API error evicting {pod.key}: {e.status} {e.reason}")
            return False

    def get_priority_class_value(self, name: str) -> int:
        """
        Value of a PriorityClass

        Raises:
            ApiException: the class does not exist or cannot be read
        """
        priority_class = self.scheduling_api.read_priority_class(name=name)
        return priority_class.value
