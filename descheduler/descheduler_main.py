"""
Descheduler entry point

Loads the policy, connects to the cluster and runs the
RemovePodsViolatingInterPodAntiAffinity strategy once or periodically.
"""

import argparse
import traceback
from typing import Optional

from prometheus_client import Histogram, start_http_server

from descheduler.api.errors import ConfigConflict
from descheduler.api.models import DeschedulerPolicy, RunContext
from descheduler.evictions.evictions import EvictorFilter, PodEvictor, get_priority_threshold
from descheduler.k8s.client import KubernetesClient
from descheduler.strategies.pod_antiaffinity import (
    STRATEGY_NAME,
    remove_pods_violating_inter_pod_anti_affinity,
)
from descheduler.utils.config_loader import ConfigLoader
from descheduler.utils.logger import setup_logging, get_logger

logger = get_logger("DeschedulerMain")


class Descheduler:
    """Runs the anti-affinity strategy against a cluster"""

    cycle_duration = Histogram(
        'descheduler_cycle_duration_seconds',
        'Duration of one descheduling cycle'
    )

    def __init__(
        self,
        policy: DeschedulerPolicy,
        k8s: KubernetesClient,
        dry_run: bool = False
    ):
        self.policy = policy
        self.k8s = k8s
        self.dry_run = dry_run

    def run_once(self, ctx: Optional[RunContext] = None):
        """Run one descheduling cycle"""
        ctx = ctx or RunContext()

        strategy = self.policy.strategies.get(STRATEGY_NAME)
        if strategy is None or not strategy.enabled:
            logger.info(f"{STRATEGY_NAME} is not enabled, nothing to do")
            return

        with self.cycle_duration.time():
            try:
                priority_threshold = get_priority_threshold(
                    strategy.params, self.k8s.get_priority_class_value
                )
            except ConfigConflict as e:
                logger.error(f"Invalid {STRATEGY_NAME} parameters: {e}")
                return
            except Exception as e:
                logger.error(f"Failed to resolve priority threshold: {e}")
                return

            nodes = self.k8s.list_ready_nodes(self.policy.node_selector)
            if not nodes:
                logger.warning("No ready nodes found, skipping cycle")
                return

            pod_evictor = PodEvictor(
                self.k8s,
                dry_run=self.dry_run,
                max_pods_to_evict_per_node=self.policy.max_pods_to_evict_per_node,
                max_pods_to_evict_per_namespace=self.policy.max_pods_to_evict_per_namespace
            )

            evictor_filter = EvictorFilter(
                evict_local_storage_pods=self.policy.evict_local_storage_pods,
                evict_system_critical_pods=self.policy.evict_system_critical_pods,
                ignore_pvc_pods=self.policy.ignore_pvc_pods,
                priority_threshold=priority_threshold
            )

            remove_pods_violating_inter_pod_anti_affinity(
                ctx,
                strategy,
                nodes,
                pod_evictor,
                evictor_filter.filter,
                self.k8s.get_pods_assigned_to_node
            )

        logger.info(f"Cycle done: {pod_evictor.total_evicted()} pods evicted across {len(nodes)} nodes")

    def run(self, interval: int, ctx: Optional[RunContext] = None):
        """Run cycles every `interval` seconds until the context is cancelled"""
        ctx = ctx or RunContext()
        while not ctx.cancelled:
            try:
                self.run_once(ctx)
            except Exception as e:
                logger.error(f"Descheduling cycle failed: {e}")
                logger.error(traceback.format_exc())
            if interval <= 0 or ctx.wait(interval):
                break


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Evict pods violating inter-pod anti-affinity")
    parser.add_argument("--policy-config-file", default="config/policy.yaml")
    parser.add_argument("--kubeconfig", default=None)
    parser.add_argument("--context", default=None)
    parser.add_argument("--in-cluster", action="store_true")
    parser.add_argument("--dry-run", action="store_true")
    parser.add_argument("--descheduling-interval", type=int, default=None,
                        help="Seconds between cycles; 0 runs once")
    parser.add_argument("--metrics-port", type=int, default=None)
    parser.add_argument("--log-level", default="INFO")
    parser.add_argument("--log-dir", default=None)
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    setup_logging("DeschedulerMain", log_dir=args.log_dir, level=args.log_level)

    config = ConfigLoader(args.policy_config_file)
    k8s = KubernetesClient(
        kubeconfig_path=args.kubeconfig,
        context=args.context,
        in_cluster=args.in_cluster
    )

    if args.metrics_port:
        start_http_server(args.metrics_port)
        logger.info(f"📊 Metrics server started on :{args.metrics_port}/metrics")

    interval = args.descheduling_interval
    if interval is None:
        interval = config.get_descheduling_interval()

    descheduler = Descheduler(config.policy, k8s, dry_run=args.dry_run)
    ctx = RunContext()
    try:
        descheduler.run(interval, ctx)
    except KeyboardInterrupt:
        logger.info("Shutdown requested")
        ctx.cancel()


if __name__ == "__main__":
    main()
