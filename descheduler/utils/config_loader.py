"""
Configuration loader for the descheduler
Loads the YAML DeschedulerPolicy file with validation
"""

import yaml
from pathlib import Path
from typing import Dict, Any, Optional

from ..api.errors import ConfigError
from ..api.models import (
    DeschedulerPolicy,
    DeschedulerStrategy,
    LabelSelector,
    Namespaces,
    StrategyParameters,
)
from .logger import get_logger

logger = get_logger("ConfigLoader")

POLICY_KIND = "DeschedulerPolicy"


def _optional_int(data: Dict[str, Any], key: str) -> Optional[int]:
    value = data.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"{key} must be an integer, got {value!r}")
    return value


def _descheduling_interval(raw: Dict[str, Any]) -> int:
    """Seconds between cycles; absent means run once"""
    if 'deschedulingInterval' not in raw:
        return 0
    interval = _optional_int(raw, 'deschedulingInterval')
    if interval is None or interval < 0:
        raise ConfigError(f"deschedulingInterval must be a non-negative integer, got {interval!r}")
    return interval


def parse_strategy_params(data: Optional[Dict[str, Any]]) -> Optional[StrategyParameters]:
    """Parse the `params` block of a strategy"""
    if data is None:
        return None
    if not isinstance(data, dict):
        raise ConfigError(f"strategy params must be a mapping, got {type(data).__name__}")

    namespaces = None
    ns_data = data.get('namespaces')
    if ns_data is not None:
        namespaces = Namespaces(
            include=list(ns_data.get('include') or []),
            exclude=list(ns_data.get('exclude') or [])
        )

    return StrategyParameters(
        namespaces=namespaces,
        label_selector=LabelSelector.from_dict(data.get('labelSelector')),
        threshold_priority=_optional_int(data, 'thresholdPriority'),
        threshold_priority_class_name=data.get('thresholdPriorityClassName') or ""
    )


def parse_policy(raw: Dict[str, Any]) -> DeschedulerPolicy:
    """
    Parse a raw policy mapping into a DeschedulerPolicy

    Args:
        raw: Result of yaml.safe_load on a policy file

    Returns:
        DeschedulerPolicy

    Raises:
        ConfigError: structure is invalid
    """
    if not isinstance(raw, dict):
        raise ConfigError("policy file must contain a mapping")

    kind = raw.get('kind', POLICY_KIND)
    if kind != POLICY_KIND:
        raise ConfigError(f"unexpected kind {kind!r}, expected {POLICY_KIND}")

    strategies: Dict[str, DeschedulerStrategy] = {}
    strategies_data = raw.get('strategies') or {}
    if not isinstance(strategies_data, dict):
        raise ConfigError("strategies must be a mapping of strategy name -> config")

    for name, strategy_data in strategies_data.items():
        strategy_data = strategy_data or {}
        strategies[name] = DeschedulerStrategy(
            enabled=bool(strategy_data.get('enabled', False)),
            params=parse_strategy_params(strategy_data.get('params'))
        )

    return DeschedulerPolicy(
        strategies=strategies,
        node_selector=raw.get('nodeSelector'),
        max_pods_to_evict_per_node=_optional_int(raw, 'maxNoOfPodsToEvictPerNode'),
        max_pods_to_evict_per_namespace=_optional_int(raw, 'maxNoOfPodsToEvictPerNamespace'),
        evict_local_storage_pods=bool(raw.get('evictLocalStoragePods', False)),
        evict_system_critical_pods=bool(raw.get('evictSystemCriticalPods', False)),
        ignore_pvc_pods=bool(raw.get('ignorePvcPods', False)),
        descheduling_interval=_descheduling_interval(raw)
    )


class ConfigLoader:
    """
    Loads and manages the descheduler policy file
    """

    def __init__(self, policy_file: str = "config/policy.yaml"):
        """
        Initialize ConfigLoader

        Args:
            policy_file: Path to the DeschedulerPolicy YAML file
        """
        self.policy_file = Path(policy_file)

        if not self.policy_file.exists():
            raise FileNotFoundError(f"Policy file not found: {policy_file}")

        logger.info(f"Loading policy from: {self.policy_file}")

        with open(self.policy_file, 'r', encoding='utf-8') as f:
            self.policy_raw = yaml.safe_load(f)

        self.policy = parse_policy(self.policy_raw)

        enabled = [name for name, s in self.policy.strategies.items() if s.enabled]
        logger.info(f"Loaded {len(self.policy.strategies)} strategies ({len(enabled)} enabled)")

    def get_strategy(self, name: str) -> Optional[DeschedulerStrategy]:
        """Get strategy config by name"""
        return self.policy.strategies.get(name)

    def get_descheduling_interval(self) -> int:
        """Get descheduling interval in seconds (0 = run once)"""
        return self.policy.descheduling_interval

    def reload(self):
        """Reload the policy file"""
        logger.info("Reloading policy...")
        self.__init__(policy_file=str(self.policy_file))
