"""
Descheduler API types and errors
"""

from .errors import (
    DeschedulerError,
    ConfigConflict,
    ConfigError,
    FilterBuildError,
    ListError,
    SelectorCompileError,
)
from .models import (
    LabelSelector,
    LabelSelectorRequirement,
    PodAffinityTerm,
    PodAntiAffinity,
    OwnerReference,
    Pod,
    Node,
    Namespaces,
    StrategyParameters,
    DeschedulerStrategy,
    DeschedulerPolicy,
    RunContext,
)

__all__ = [
    'DeschedulerError',
    'ConfigConflict',
    'ConfigError',
    'FilterBuildError',
    'ListError',
    'SelectorCompileError',
    'LabelSelector',
    'LabelSelectorRequirement',
    'PodAffinityTerm',
    'PodAntiAffinity',
    'OwnerReference',
    'Pod',
    'Node',
    'Namespaces',
    'StrategyParameters',
    'DeschedulerStrategy',
    'DeschedulerPolicy',
    'RunContext',
]
