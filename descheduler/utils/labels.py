"""
Label selector compilation and pod affinity term helpers
"""

import re
from typing import Dict, List, Optional, Set

from ..api.errors import SelectorCompileError
from ..api.models import (
    LabelSelector,
    Pod,
    PodAffinityTerm,
    OP_IN,
    OP_NOT_IN,
    OP_EXISTS,
    OP_DOES_NOT_EXIST,
)

# Label names and values: up to 63 alphanumerics, "-", "_" or ".", alphanumeric at both ends
QUALIFIED_NAME_MAX_LENGTH = 63
LABEL_VALUE_MAX_LENGTH = 63
DNS1123_SUBDOMAIN_MAX_LENGTH = 253

_NAME_RE = re.compile(r"([A-Za-z0-9][-A-Za-z0-9_.]*)?[A-Za-z0-9]")
_DNS1123_SUBDOMAIN_RE = re.compile(r"[a-z0-9]([-a-z0-9]*[a-z0-9])?(\.[a-z0-9]([-a-z0-9]*[a-z0-9])?)*")


def _validate_label_key(key: str):
    """Qualified name: optional DNS-1123 subdomain prefix, "/", then a name"""
    if not key:
        raise SelectorCompileError("label selector requirement has an empty key")
    if not isinstance(key, str):
        raise SelectorCompileError(f"invalid label key {key!r}: must be a string")

    prefix, sep, name = key.rpartition("/")
    if sep:
        if not prefix or len(prefix) > DNS1123_SUBDOMAIN_MAX_LENGTH or not _DNS1123_SUBDOMAIN_RE.fullmatch(prefix):
            raise SelectorCompileError(f"invalid label key {key!r}: prefix must be a DNS-1123 subdomain")
    if len(name) > QUALIFIED_NAME_MAX_LENGTH or not _NAME_RE.fullmatch(name):
        raise SelectorCompileError(
            f"invalid label key {key!r}: name must be at most {QUALIFIED_NAME_MAX_LENGTH} "
            f"alphanumerics, '-', '_' or '.', starting and ending with an alphanumeric"
        )


def _validate_label_value(key: str, value: str):
    # empty values are valid
    if not isinstance(value, str):
        raise SelectorCompileError(f"invalid label value {value!r} for key {key!r}: must be a string")
    if value and (len(value) > LABEL_VALUE_MAX_LENGTH or not _NAME_RE.fullmatch(value)):
        raise SelectorCompileError(
            f"invalid label value {value!r} for key {key!r}: must be at most {LABEL_VALUE_MAX_LENGTH} "
            f"alphanumerics, '-', '_' or '.', starting and ending with an alphanumeric"
        )


class Requirement:
    """Compiled matchExpressions entry"""

    def __init__(self, key: str, operator: str, values: List[str]):
        self.key = key
        self.operator = operator
        self.values = frozenset(values)

    def matches(self, labels: Dict[str, str]) -> bool:
        if self.operator == OP_IN:
            return self.key in labels and labels[self.key] in self.values
        if self.operator == OP_NOT_IN:
            return self.key not in labels or labels[self.key] not in self.values
        if self.operator == OP_EXISTS:
            return self.key in labels
        return self.key not in labels

    def __repr__(self):
        return f"Requirement({self.key} {self.operator} {sorted(self.values)})"


class Selector:
    """ANDed set of requirements; `nothing` selectors never match"""

    def __init__(self, requirements: List[Requirement], nothing: bool = False):
        self.requirements = requirements
        self.nothing = nothing

    def matches(self, labels: Optional[Dict[str, str]]) -> bool:
        if self.nothing:
            return False
        labels = labels or {}
        return all(req.matches(labels) for req in self.requirements)

    def empty(self) -> bool:
        return not self.nothing and not self.requirements


def _new_requirement(key: str, operator: str, values: List[str]) -> Requirement:
    _validate_label_key(key)

    if operator in (OP_IN, OP_NOT_IN):
        if not values:
            raise SelectorCompileError(
                f"values must be non-empty for operator {operator} (key {key!r})"
            )
    elif operator in (OP_EXISTS, OP_DOES_NOT_EXIST):
        if values:
            raise SelectorCompileError(
                f"values must be empty for operator {operator} (key {key!r})"
            )
    else:
        raise SelectorCompileError(f"{operator!r} is not a valid label selector operator")

    for value in values:
        _validate_label_value(key, value)

    return Requirement(key, operator, values)


def label_selector_as_selector(selector: Optional[LabelSelector]) -> Selector:
    """
    Convert a LabelSelector into a Selector

    Args:
        selector: LabelSelector or None

    Returns:
        Selector (None -> matches nothing, empty -> matches everything)

    Raises:
        SelectorCompileError: invalid key, operator or values
    """
    if selector is None:
        return Selector([], nothing=True)

    requirements = [
        _new_requirement(key, OP_IN, [value])
        for key, value in sorted(selector.match_labels.items())
    ]
    for expr in selector.match_expressions:
        requirements.append(_new_requirement(expr.key, expr.operator, list(expr.values)))

    return Selector(requirements)


def get_namespaces_from_pod_affinity_term(pod: Pod, term: PodAffinityTerm) -> Set[str]:
    """Namespaces a term applies to; defaults to the pod's own namespace"""
    if term.namespaces:
        return set(term.namespaces)
    return {pod.namespace}


def pod_matches_terms_namespace_and_selector(pod: Pod, namespaces: Set[str], selector: Selector) -> bool:
    if pod.namespace not in namespaces:
        return False
    return selector.matches(pod.labels)
