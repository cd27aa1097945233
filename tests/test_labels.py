"""
Test label selector compilation
"""

import pytest

from descheduler.api.errors import SelectorCompileError
from descheduler.api.models import LabelSelector, LabelSelectorRequirement, PodAffinityTerm
from descheduler.utils.labels import (
    get_namespaces_from_pod_affinity_term,
    label_selector_as_selector,
    pod_matches_terms_namespace_and_selector,
)


def expr(key, operator, *values):
    return LabelSelectorRequirement(key=key, operator=operator, values=list(values))


def test_none_selector_matches_nothing():
    selector = label_selector_as_selector(None)
    assert not selector.matches({})
    assert not selector.matches({"app": "web"})


def test_empty_selector_matches_everything():
    selector = label_selector_as_selector(LabelSelector())
    assert selector.empty()
    assert selector.matches({})
    assert selector.matches({"app": "web"})


def test_match_labels_and_expressions_are_anded():
    selector = label_selector_as_selector(LabelSelector(
        match_labels={"app": "web"},
        match_expressions=[expr("tier", "In", "frontend", "edge")]
    ))

    assert selector.matches({"app": "web", "tier": "edge"})
    assert not selector.matches({"app": "web", "tier": "backend"})
    assert not selector.matches({"tier": "edge"})


def test_operators():
    labels = {"app": "web", "env": "prod"}

    assert label_selector_as_selector(LabelSelector(match_expressions=[expr("env", "NotIn", "dev")])).matches(labels)
    assert label_selector_as_selector(LabelSelector(match_expressions=[expr("zone", "NotIn", "a")])).matches(labels)
    assert not label_selector_as_selector(LabelSelector(match_expressions=[expr("env", "NotIn", "prod")])).matches(labels)

    assert label_selector_as_selector(LabelSelector(match_expressions=[expr("app", "Exists")])).matches(labels)
    assert not label_selector_as_selector(LabelSelector(match_expressions=[expr("zone", "Exists")])).matches(labels)

    assert label_selector_as_selector(LabelSelector(match_expressions=[expr("zone", "DoesNotExist")])).matches(labels)
    assert not label_selector_as_selector(LabelSelector(match_expressions=[expr("app", "DoesNotExist")])).matches(labels)


@pytest.mark.parametrize("requirement", [
    expr("app", "In"),
    expr("app", "NotIn"),
    expr("app", "Exists", "web"),
    expr("app", "DoesNotExist", "web"),
    expr("app", "Gt", "1"),
    expr("", "Exists"),
    expr("my app", "Exists"),
    expr("-app", "Exists"),
    expr("a" * 64, "Exists"),
    expr("Example.com/app", "Exists"),
    expr("/app", "Exists"),
    expr("example.com/", "Exists"),
    expr("app", "In", "not a valid value!"),
    expr("app", "In", "v" * 64),
    expr("app", "In", "-edge"),
    expr("app", "NotIn", "in valid"),
])
def test_invalid_requirements_raise(requirement):
    with pytest.raises(SelectorCompileError):
        label_selector_as_selector(LabelSelector(match_expressions=[requirement]))


@pytest.mark.parametrize("match_labels", [
    {"app": "not a valid value!"},
    {"my app": "web"},
    {"app": "v" * 64},
    {"version": 1},
])
def test_invalid_match_labels_raise(match_labels):
    with pytest.raises(SelectorCompileError):
        label_selector_as_selector(LabelSelector(match_labels=match_labels))


def test_valid_keys_and_values():
    selector = label_selector_as_selector(LabelSelector(
        match_labels={"app.kubernetes.io/name": "web_v1.2", "tier": ""},
        match_expressions=[expr("a" * 63, "In", "v" * 63), expr("k8s.example.com/Zone-A", "Exists")]
    ))

    assert selector.matches({
        "app.kubernetes.io/name": "web_v1.2",
        "tier": "",
        "a" * 63: "v" * 63,
        "k8s.example.com/Zone-A": "x",
    })


def test_term_namespaces(pod_factory):
    pod = pod_factory("p1", namespace="ns1")

    assert get_namespaces_from_pod_affinity_term(pod, PodAffinityTerm(label_selector=None)) == {"ns1"}
    assert get_namespaces_from_pod_affinity_term(
        pod, PodAffinityTerm(label_selector=None, namespaces=["a", "b"])
    ) == {"a", "b"}


def test_pod_matches_namespace_and_selector(pod_factory):
    selector = label_selector_as_selector(LabelSelector(match_labels={"app": "db"}))
    pod = pod_factory("db-0", namespace="data", labels={"app": "db"})

    assert pod_matches_terms_namespace_and_selector(pod, {"data"}, selector)
    assert not pod_matches_terms_namespace_and_selector(pod, {"default"}, selector)
