from datetime import date, datetime, timezone

import pytest
from google.protobuf.timestamp_pb2 import Timestamp

from control_panel.access.normalizer import (
    normalize_access_group,
    normalize_feature_access,
    normalize_role_array,
    normalize_string_array,
    normalize_timestamp,
    sort_features,
    sort_groups,
)
from control_panel.access.records import FeatureStatus
from control_panel.roles import AccessRole


def test_empty_feature_document_gets_defaults() -> None:
    record = normalize_feature_access("dashboard", {})

    assert record.id == "dashboard"
    assert record.status == "hidden"
    assert record.min_role == "user"
    assert record.route == "/"
    assert record.area == "controlPanel"
    assert record.title_key == "dashboard"
    assert record.show_in_sidebar is False
    assert record.show_in_topbar is False
    assert record.allowed_roles is None
    assert record.nav_order is None


@pytest.mark.parametrize("raw", [None, 42, "text", ["a"]])
def test_non_mapping_document_is_treated_as_empty(raw) -> None:
    record = normalize_feature_access("x", raw)

    assert record == normalize_feature_access("x", {})


def test_normalization_is_idempotent() -> None:
    raw = {
        "route": "  /access ",
        "titleKey": "nav.access",
        "status": "Beta",
        "minRole": " ADMIN ",
        "allowedRoles": ["Admin", "mod", "admin", 3, ""],
        "allowedGroups": ["beta_testers", " beta_testers "],
        "showInSidebar": True,
        "showInTopbar": "yes",
        "navOrder": 60,
        "updatedAt": "2024-05-01T10:00:00Z",
        "createdAt": 1714557600000,
        "updatedBy": "user-1",
    }
    once = normalize_feature_access("access", raw)

    assert normalize_feature_access("access", once.to_document()) == once
    assert normalize_feature_access("access", once) == once


def test_group_normalization_is_idempotent() -> None:
    raw = {
        "label": "Beta Testers",
        "userIds": ["u1", "u2", "u1"],
        "minRole": "Developer",
        "allowedRoles": ["developer", "ADMIN"],
        "isSystem": True,
    }
    once = normalize_access_group("beta_testers", raw)

    assert normalize_access_group("beta_testers", once.to_document()) == once
    assert once.user_ids == ("u1", "u2")
    assert once.min_role == "developer"


def test_empty_array_collapses_like_missing_array() -> None:
    assert normalize_feature_access("a", {"allowedRoles": []}).allowed_roles is None
    assert normalize_feature_access("a", {}).allowed_roles is None
    assert normalize_feature_access("a", {"allowedGroups": ["", "  "]}).allowed_groups is None


def test_roles_are_case_folded_and_deduplicated() -> None:
    record = normalize_feature_access("a", {"allowedRoles": ["Admin", "admin", "ADMIN"]})

    assert record.allowed_roles == ("admin",)


def test_role_array_keeps_first_seen_order_and_drops_non_strings() -> None:
    assert normalize_role_array(["User", None, "admin", "user", 7]) == ("user", "admin")
    assert normalize_role_array("admin") is None


def test_string_array_is_trimmed_but_not_lowercased() -> None:
    assert normalize_string_array([" UserA ", "UserA", "userB"]) == ("UserA", "userB")


def test_unknown_status_is_kept_as_raw_string() -> None:
    record = normalize_feature_access("a", {"status": "Archived"})

    assert record.status == "archived"
    assert record.known_status == "archived"
    assert normalize_feature_access("a", {"status": "beta"}).known_status is FeatureStatus.BETA


def test_unknown_min_role_is_kept_as_raw_string() -> None:
    assert normalize_feature_access("a", {"minRole": "Tester"}).known_min_role == "tester"
    assert normalize_feature_access("a", {}).known_min_role is AccessRole.USER


def test_group_without_label_uses_id_and_has_no_min_role() -> None:
    group = normalize_access_group("dev_team", {"minRole": "  "})

    assert group.label == "dev_team"
    assert group.min_role is None
    assert group.is_system is False


def test_features_sort_by_nav_order_with_unset_last() -> None:
    records = [
        normalize_feature_access("b", {"navOrder": 5, "route": "/b"}),
        normalize_feature_access("a", {"route": "/a"}),
        normalize_feature_access("c", {"navOrder": 1, "route": "/c"}),
    ]

    assert [record.id for record in sort_features(records)] == ["c", "b", "a"]


def test_features_with_same_nav_order_sort_by_route() -> None:
    records = [
        normalize_feature_access("y", {"navOrder": 10, "route": "/zeta"}),
        normalize_feature_access("x", {"navOrder": 10, "route": "/alpha"}),
        normalize_feature_access("n", {"navOrder": float("nan"), "route": "/nan"}),
    ]

    assert [record.id for record in sort_features(records)] == ["x", "y", "n"]


def test_groups_sort_by_id() -> None:
    groups = [normalize_access_group(group_id, {}) for group_id in ("dev_team", "beta", "creators")]

    assert [group.id for group in sort_groups(groups)] == ["beta", "creators", "dev_team"]


def test_invalid_timestamp_normalizes_to_none() -> None:
    record = normalize_feature_access("a", {"updatedAt": "not-a-date"})

    assert record.updated_at is None


@pytest.mark.parametrize(
    "value",
    [
        datetime(2024, 5, 1, 10, 0, tzinfo=timezone.utc),
        datetime(2024, 5, 1, 10, 0),
        "2024-05-01T10:00:00Z",
        "2024-05-01T10:00:00+00:00",
        1714557600000,
        1714557600000.0,
    ],
)
def test_timestamp_inputs_normalize_to_aware_datetime(value) -> None:
    assert normalize_timestamp(value) == datetime(2024, 5, 1, 10, 0, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    ("value", "micros"),
    [
        ("2024-05-01T10:00:00.123456789Z", 123456),
        ("2024-05-01T10:00:00.5+00:00", 500000),
        ("2024-05-01 10:00:00.1234", 123400),
    ],
)
def test_iso_fractions_of_any_length_are_parsed(value: str, micros: int) -> None:
    assert normalize_timestamp(value) == datetime(
        2024, 5, 1, 10, 0, 0, micros, tzinfo=timezone.utc
    )

def test_protobuf_timestamp_and_date_are_supported() -> None:
    stamp = Timestamp(seconds=1714557600)

    assert normalize_timestamp(stamp) == datetime(2024, 5, 1, 10, 0, tzinfo=timezone.utc)
    assert normalize_timestamp(date(2024, 5, 1)) == datetime(2024, 5, 1, tzinfo=timezone.utc)


@pytest.mark.parametrize("value", [None, True, "", "   ", float("nan"), float("inf"), {}, 10**20])
def test_unusable_timestamps_normalize_to_none(value) -> None:
    assert normalize_timestamp(value) is None
