from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from capacity_planner.core.config import get_settings

API = "/api/v1"


def _headers(organisation_id: str = "", role: str = "org_admin") -> dict[str, str]:
    headers = {"X-User-ID": "analyst-1", "X-Role": role}
    if organisation_id:
        headers["X-Org-ID"] = organisation_id
    return headers


def _post(client: TestClient, headers: dict[str, str], path: str, payload: dict[str, object]) -> dict[str, object]:
    response = client.post(f"{API}{path}", headers=headers, json=payload)
    assert response.status_code == 201, response.text
    return response.json()


@pytest.fixture()
def planning(client: TestClient) -> dict[str, str]:
    organisation = _post(
        client,
        _headers(),
        "/organisations",
        {"name": "Acme", "hours_per_day": 8, "hours_per_week": 40, "hours_per_year": 1760},
    )
    headers = _headers(organisation["id"])
    person = _post(client, headers, "/people", {"name": "P1", "employment_pct": 100})
    project = _post(
        client,
        headers,
        "/projects",
        {"name": "PR1", "start_date": "2026-01-01", "end_date": "2026-03-31", "estimated_effort_hours": 16},
    )
    _post(
        client,
        headers,
        "/commitments",
        {
            "target_type": "person",
            "target_id": person["id"],
            "project_id": project["id"],
            "start_date": "2026-01-01",
            "end_date": "2026-01-30",
            "percent": 50,
        },
    )
    return {"organisation_id": organisation["id"], "person_id": person["id"], "project_id": project["id"]}


def _report(client: TestClient, organisation_id: str, **overrides: object):
    payload: dict[str, object] = {
        "scope": "person",
        "from_date": "2026-01-01",
        "to_date": "2026-01-01",
        "granularity": "day",
        "ids": [],
    }
    payload.update(overrides)
    return client.post(f"{API}/reports/availability-load", headers=_headers(organisation_id, "org_user"), json=payload)


def test_person_day_report(client: TestClient, planning: dict[str, str]) -> None:
    response = _report(client, planning["organisation_id"], ids=[planning["person_id"]])

    assert response.status_code == 200
    assert response.json() == {
        "buckets": [
            {
                "period_start": "2026-01-01",
                "availability_hours": 8.0,
                "load_hours": 4.0,
                "free_hours": 4.0,
                "utilization_pct": 50.0,
            }
        ]
    }


def test_holiday_leaves_negative_free_hours(client: TestClient, planning: dict[str, str]) -> None:
    _post(client, _headers(planning["organisation_id"]), "/holidays", {"date": "2026-01-02", "hours": 8})

    response = _report(client, planning["organisation_id"], scope="organisation", to_date="2026-01-02")

    second = response.json()["buckets"][1]
    assert second["period_start"] == "2026-01-02"
    assert (second["availability_hours"], second["load_hours"], second["free_hours"]) == (0.0, 4.0, -4.0)
    assert second["utilization_pct"] == 0.0


def test_project_scope_includes_cumulative_progress(client: TestClient, planning: dict[str, str]) -> None:
    response = _report(
        client,
        planning["organisation_id"],
        scope="project",
        ids=[planning["project_id"]],
        to_date="2026-01-02",
    )

    first, second = response.json()["buckets"]
    assert (first["project_load_hours"], first["project_completion_pct"]) == (4.0, 25.0)
    assert (second["project_load_hours"], second["project_completion_pct"]) == (8.0, 50.0)
    assert second["project_estimation_hours"] == 16.0


def test_weekly_buckets_start_on_monday(client: TestClient, planning: dict[str, str]) -> None:
    response = _report(
        client,
        planning["organisation_id"],
        scope="team",
        granularity="week",
        from_date="2026-01-01",
        to_date="2026-01-12",
    )

    assert response.status_code == 200
    # No teams exist, so the team scope resolves to nobody.
    assert [bucket["period_start"] for bucket in response.json()["buckets"]] == [
        "2025-12-29",
        "2026-01-05",
        "2026-01-12",
    ]
    assert all(bucket["availability_hours"] == 0.0 for bucket in response.json()["buckets"])


@pytest.mark.parametrize(
    "overrides",
    [
        {"scope": "division"},
        {"granularity": "quarter"},
        {"from_date": "2026-02-01", "to_date": "2026-01-01"},
        {"from_date": "2026-13-01"},
    ],
)
def test_invalid_requests_are_rejected(client: TestClient, planning: dict[str, str], overrides: dict[str, object]) -> None:
    response = _report(client, planning["organisation_id"], **overrides)

    assert response.status_code == 422


def test_unknown_scope_id_is_not_found(client: TestClient, planning: dict[str, str]) -> None:
    response = _report(client, planning["organisation_id"], ids=["missing-person"])

    assert response.status_code == 404


def test_report_range_is_bounded(
    client: TestClient,
    planning: dict[str, str],
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setattr(get_settings(), "max_report_days", 5)

    response = _report(client, planning["organisation_id"], to_date="2026-01-06")

    assert response.status_code == 422
    assert response.json() == {"detail": "Report range must not exceed 5 days."}


def test_report_requires_organisation_scope(client: TestClient) -> None:
    response = client.post(
        f"{API}/reports/availability-load",
        headers=_headers(),
        json={"scope": "organisation", "from_date": "2026-01-01", "to_date": "2026-01-01", "granularity": "day"},
    )

    assert response.status_code == 403
