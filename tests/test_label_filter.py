"""Unit tests for the container label filter.

Covers label lookup, event classification and the existing-record membership
test used during bootstrap.
"""

import pytest

from pihole_customdns.cli import (
    TARGET_KEY,
    EventAction,
    LifecycleEvent,
    classify_event,
    extract_domain,
    is_record_missing,
)

# =============================================================================
# Label Lookup
# =============================================================================


@pytest.mark.parametrize(
    "labels",
    [
        {},
        None,
        {"com.docker.compose.service": "web"},
        {"docker-pihole-customdns": "app.lan"},
        {"docker-pihole-customdns.domains": "app.lan"},
    ],
)
def test_extract_domain_not_relevant_without_target_key(labels) -> None:
    """Label sets lacking the target key are not relevant."""
    assert extract_domain(labels) is None


@pytest.mark.parametrize(
    "key",
    [
        TARGET_KEY,
        TARGET_KEY.upper(),
        "Docker-Pihole-CustomDNS.Domain",
    ],
)
def test_extract_domain_matches_key_in_any_casing(key: str) -> None:
    """The target key matches regardless of casing and the value is lower-cased."""
    labels = {"com.docker.compose.service": "web", key: "Web.Home.LAN"}
    assert extract_domain(labels) == "web.home.lan"


def test_extract_domain_keeps_empty_value_relevant() -> None:
    """An empty label value is still a relevant (if unusual) domain."""
    assert extract_domain({TARGET_KEY: ""}) == ""


def test_extract_domain_custom_target_key() -> None:
    """A different target key can be supplied."""
    labels = {"org.example.dns": "API.example.com", TARGET_KEY: "other.lan"}
    assert extract_domain(labels, "org.example.dns") == "api.example.com"


# =============================================================================
# Event Classification
# =============================================================================


def test_classify_created_event_lowercases_domain() -> None:
    """A create event with the target label yields CREATED and a lower-cased domain."""
    event = LifecycleEvent(
        action="create", container_name="svc", attributes={TARGET_KEY: "Svc.Example"}
    )

    decision = classify_event(event)

    assert decision is not None
    assert decision.action is EventAction.CREATED
    assert decision.domain == "svc.example"
    assert decision.container_name == "svc"


@pytest.mark.parametrize("action", ["destroy", "remove"])
def test_classify_removal_events(action: str) -> None:
    """destroy and remove both classify as REMOVED."""
    event = LifecycleEvent(action=action, container_name="svc", attributes={TARGET_KEY: "a.lan"})

    decision = classify_event(event)

    assert decision is not None
    assert decision.action is EventAction.REMOVED


@pytest.mark.parametrize("action", ["start", "stop", "die", "rename"])
def test_classify_ignores_other_actions(action: str) -> None:
    """Only create and destroy/remove matter."""
    event = LifecycleEvent(action=action, container_name="svc", attributes={TARGET_KEY: "a.lan"})
    assert classify_event(event) is None


def test_classify_ignores_unlabelled_container() -> None:
    """A create event for a container without the target label is ignored."""
    event = LifecycleEvent(action="create", container_name="svc", attributes={"image": "nginx"})
    assert classify_event(event) is None


# =============================================================================
# Existing Record Membership
# =============================================================================


def test_is_record_missing_exact_pair() -> None:
    existing = [("foo", "10.0.0.5")]

    assert is_record_missing("foo", "10.0.0.5", existing) is False
    assert is_record_missing("bar", "10.0.0.5", existing) is True


def test_is_record_missing_requires_both_components() -> None:
    """Same name with a different answer still counts as missing."""
    assert is_record_missing("foo", "10.0.0.6", [("foo", "10.0.0.5")]) is True


def test_is_record_missing_tolerates_duplicates() -> None:
    """Duplicate rows in provider data are fine."""
    existing = [("foo", "10.0.0.5"), ("foo", "10.0.0.5"), ("bar", "10.0.0.5")]
    assert is_record_missing("foo", "10.0.0.5", existing) is False


def test_is_record_missing_empty_relation() -> None:
    assert is_record_missing("foo", "10.0.0.5", []) is True
