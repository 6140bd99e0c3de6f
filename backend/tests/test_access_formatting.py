from datetime import datetime, timedelta, timezone

import pytest

from control_panel.access.formatting import (
    filter_features,
    filter_groups,
    format_timestamp,
    status_label,
)
from control_panel.access.normalizer import normalize_access_group, normalize_feature_access
from control_panel.roles import role_label

NOW = datetime(2024, 5, 10, 12, 0, tzinfo=timezone.utc)


def test_missing_timestamp_renders_dash() -> None:
    assert format_timestamp(None) == "—"


def test_invalid_raw_timestamp_renders_dash_end_to_end() -> None:
    record = normalize_feature_access("a", {"updatedAt": "not-a-date"})

    assert format_timestamp(record.updated_at, now=NOW) == "—"


@pytest.mark.parametrize(
    ("delta", "expected"),
    [
        (timedelta(minutes=-5), "5m ago"),
        (timedelta(minutes=5), "in 5m"),
        (timedelta(seconds=0), "in 0m"),
        (timedelta(minutes=-89), "89m ago"),
        (timedelta(minutes=-90), "2h ago"),
        (timedelta(hours=-47), "47h ago"),
        (timedelta(hours=-48), "2d ago"),
        (timedelta(days=3), "in 3d"),
        (timedelta(days=-9), "9d ago"),
    ],
)
def test_relative_timestamps(delta: timedelta, expected: str) -> None:
    assert format_timestamp(NOW + delta, now=NOW) == expected


def test_old_timestamp_renders_absolute_date() -> None:
    value = datetime(2024, 1, 2, 8, 5, tzinfo=timezone.utc)

    assert format_timestamp(value, now=NOW) == "Jan 02, 2024, 08:05"


def test_status_and_role_labels() -> None:
    assert status_label("logged_in") == "Logged in"
    assert status_label("dev_only") == "Dev only"
    assert status_label("archived") == "archived"
    assert role_label("mod") == "Moderator"
    assert role_label("owner") == "Owner"
    assert role_label("tester") == "tester"
    assert role_label(None) == "—"


def test_feature_filter_matches_route_title_and_area() -> None:
    features = [
        normalize_feature_access("a", {"route": "/access", "titleKey": "nav.access", "status": "beta"}),
        normalize_feature_access("b", {"route": "/logs", "area": "tools", "status": "public"}),
    ]

    assert [f.id for f in filter_features(features, "  TOOLS ")] == ["b"]
    assert [f.id for f in filter_features(features, "nav.access")] == ["a"]
    assert [f.id for f in filter_features(features, "", "public")] == ["b"]
    assert [f.id for f in filter_features(features, "/", "all")] == ["a", "b"]
    assert filter_features(features, "/logs", "beta") == []


def test_group_filter_matches_id_and_label() -> None:
    groups = [
        normalize_access_group("dev_team", {"label": "Developer Team"}),
        normalize_access_group("beta", {"label": "Beta Testers"}),
    ]

    assert [g.id for g in filter_groups(groups, "developer")] == ["dev_team"]
    assert [g.id for g in filter_groups(groups, "BETA")] == ["beta"]
    assert len(filter_groups(groups, "")) == 2
