"""HTTP tests for the leave request, balance and reference endpoints."""

from __future__ import annotations

import uuid
from datetime import date
from typing import TYPE_CHECKING, Any

from conftest import (
    EMPLOYEE_ID,
    HR_ID,
    MANAGER_ID,
    OTHER_EMPLOYEE_ID,
    YEAR,
    headers,
    seed_balance,
)
from leaveflow.models import Holiday

if TYPE_CHECKING:
    from httpx import AsyncClient

    from leaveflow.models import LeaveType
    from leaveflow.repositories.memory import InMemoryStore

REQUESTS_URL = "/leave-requests"


def _balance_url(user_id: uuid.UUID, leave_type_id: uuid.UUID | None = None) -> str:
    url = f"/users/{user_id}/balances"
    return f"{url}/{leave_type_id}" if leave_type_id else url


# ---------------------------------------------------------------------------
# Test helpers
# ---------------------------------------------------------------------------


async def _submit(
    client: AsyncClient,
    leave_type: LeaveType,
    start: str = "2025-03-03",
    end: str = "2025-03-07",
    actor: uuid.UUID = EMPLOYEE_ID,
    **extra: Any,
) -> dict[str, Any]:
    resp = await client.post(
        REQUESTS_URL,
        json={"leave_type_id": str(leave_type.id), "start_date": start, "end_date": end, **extra},
        headers=headers(actor),
    )
    assert resp.status_code == 201, resp.text
    result: dict[str, Any] = resp.json()
    return result


async def _decide(client: AsyncClient, request_id: str, stage: str, actor: uuid.UUID, approve: bool = True) -> Any:
    return await client.post(
        f"{REQUESTS_URL}/{request_id}/{stage}-decision",
        json={"approve": approve, "comment": "noted"},
        headers=headers(actor),
    )


# ---------------------------------------------------------------------------
# Submission
# ---------------------------------------------------------------------------


async def test_submit_leave_request(async_client: AsyncClient, annual: LeaveType) -> None:
    data = await _submit(async_client, annual, reason="Trip")

    assert data["status"] == "pending"
    assert data["units"] == 5.0
    assert data["user_id"] == str(EMPLOYEE_ID)
    assert data["reason"] == "Trip"
    assert data["year"] == YEAR


async def test_submit_half_day(async_client: AsyncClient, annual: LeaveType) -> None:
    data = await _submit(async_client, annual, "2025-03-03", "2025-03-03", half_day=True, half_day_period="afternoon")

    assert data["units"] == 0.5
    assert data["half_day_period"] == "afternoon"


async def test_submit_with_end_before_start(async_client: AsyncClient, annual: LeaveType) -> None:
    resp = await async_client.post(
        REQUESTS_URL,
        json={"leave_type_id": str(annual.id), "start_date": "2025-03-07", "end_date": "2025-03-03"},
        headers=headers(EMPLOYEE_ID),
    )

    assert resp.status_code == 422
    assert resp.json()["error"] == "ValidationError"


async def test_submit_weekend_only(async_client: AsyncClient, annual: LeaveType) -> None:
    resp = await async_client.post(
        REQUESTS_URL,
        json={"leave_type_id": str(annual.id), "start_date": "2025-03-08", "end_date": "2025-03-09"},
        headers=headers(EMPLOYEE_ID),
    )

    assert resp.status_code == 422


async def test_submit_insufficient_balance(async_client: AsyncClient, store: InMemoryStore, annual: LeaveType) -> None:
    seed_balance(store, annual, allocated=3)

    resp = await async_client.post(
        REQUESTS_URL,
        json={"leave_type_id": str(annual.id), "start_date": "2025-03-03", "end_date": "2025-03-07"},
        headers=headers(EMPLOYEE_ID),
    )

    assert resp.status_code == 409
    body = resp.json()
    assert body["error"] == "InsufficientBalanceError"
    assert body["context"] == {"available": 3.0, "requested": 5.0}
    assert store.requests == {}


async def test_submit_for_colleague_forbidden(async_client: AsyncClient, annual: LeaveType) -> None:
    resp = await async_client.post(
        REQUESTS_URL,
        json={
            "user_id": str(OTHER_EMPLOYEE_ID),
            "leave_type_id": str(annual.id),
            "start_date": "2025-03-03",
            "end_date": "2025-03-03",
        },
        headers=headers(EMPLOYEE_ID),
    )

    assert resp.status_code == 403


async def test_submit_requires_user_header(async_client: AsyncClient, annual: LeaveType) -> None:
    resp = await async_client.post(
        REQUESTS_URL,
        json={"leave_type_id": str(annual.id), "start_date": "2025-03-03", "end_date": "2025-03-03"},
    )

    assert resp.status_code == 422


async def test_submit_batch(async_client: AsyncClient, annual: LeaveType) -> None:
    resp = await async_client.post(
        f"{REQUESTS_URL}/batch",
        json={
            "leave_type_name": "annual",
            "leaves": [
                {"leave_on": "2025-03-03"},
                {"leave_on": "2025-03-04T00:00:00Z", "is_half_day": True},
                {"leave_on": "2025-03-05"},
            ],
        },
        headers=headers(EMPLOYEE_ID),
    )

    assert resp.status_code == 201, resp.text
    data = resp.json()
    assert len(data["items"]) == 3
    assert data["total_units"] == 2.5
    assert data["remaining_balance"] == {"2025": 17.5}
    (balance,) = data["balances"]
    assert (balance["year"], balance["pending"], balance["available"]) == (YEAR, 2.5, 17.5)
    assert {item["leave_type_id"] for item in data["items"]} == {str(annual.id)}


async def test_submit_batch_with_bad_date(async_client: AsyncClient, store: InMemoryStore) -> None:
    resp = await async_client.post(
        f"{REQUESTS_URL}/batch",
        json={"leaves": [{"leave_on": "2025-03-03"}, {"leave_on": "someday"}]},
        headers=headers(EMPLOYEE_ID),
    )

    assert resp.status_code == 422
    assert "someday" in resp.json()["detail"]
    assert store.requests == {}


async def test_submit_batch_empty(async_client: AsyncClient) -> None:
    resp = await async_client.post(f"{REQUESTS_URL}/batch", json={"leaves": []}, headers=headers(EMPLOYEE_ID))

    assert resp.status_code == 422


# ---------------------------------------------------------------------------
# Decisions
# ---------------------------------------------------------------------------


async def test_full_approval_flow(async_client: AsyncClient, annual: LeaveType) -> None:
    created = await _submit(async_client, annual)

    manager = await _decide(async_client, created["id"], "manager", MANAGER_ID)
    assert manager.status_code == 200
    assert manager.json()["status"] == "manager_approved"
    assert manager.json()["manager_id"] == str(MANAGER_ID)
    assert manager.json()["manager_comment"] == "noted"

    hr = await _decide(async_client, created["id"], "hr", HR_ID)
    assert hr.status_code == 200
    assert hr.json()["status"] == "hr_approved"

    balance = await async_client.get(
        _balance_url(EMPLOYEE_ID, annual.id), params={"year": YEAR}, headers=headers(EMPLOYEE_ID)
    )
    assert balance.status_code == 200
    assert balance.json()["used"] == 5.0
    assert balance.json()["pending"] == 0.0
    assert balance.json()["available"] == 15.0


async def test_second_hr_approval_conflicts(async_client: AsyncClient, annual: LeaveType) -> None:
    created = await _submit(async_client, annual)
    await _decide(async_client, created["id"], "manager", MANAGER_ID)
    await _decide(async_client, created["id"], "hr", HR_ID)

    resp = await _decide(async_client, created["id"], "hr", HR_ID)

    assert resp.status_code == 409
    body = resp.json()
    assert body["error"] == "InvalidTransitionError"
    assert body["context"]["current_status"] == "hr_approved"


async def test_manager_reject(async_client: AsyncClient, annual: LeaveType) -> None:
    created = await _submit(async_client, annual)

    resp = await _decide(async_client, created["id"], "manager", MANAGER_ID, approve=False)

    assert resp.status_code == 200
    assert resp.json()["status"] == "manager_rejected"


async def test_employee_cannot_approve(async_client: AsyncClient, annual: LeaveType) -> None:
    created = await _submit(async_client, annual)

    resp = await _decide(async_client, created["id"], "manager", EMPLOYEE_ID)

    assert resp.status_code == 403
    assert resp.json()["error"] == "UnauthorizedError"


async def test_decision_on_unknown_request(async_client: AsyncClient) -> None:
    resp = await _decide(async_client, str(uuid.uuid4()), "manager", MANAGER_ID)

    assert resp.status_code == 404


async def test_cancel(async_client: AsyncClient, annual: LeaveType) -> None:
    created = await _submit(async_client, annual)

    forbidden = await async_client.post(f"{REQUESTS_URL}/{created['id']}/cancel", headers=headers(MANAGER_ID))
    assert forbidden.status_code == 403

    resp = await async_client.post(f"{REQUESTS_URL}/{created['id']}/cancel", headers=headers(EMPLOYEE_ID))
    assert resp.status_code == 200
    assert resp.json()["status"] == "cancelled"

    again = await async_client.post(f"{REQUESTS_URL}/{created['id']}/cancel", headers=headers(EMPLOYEE_ID))
    assert again.status_code == 409


async def test_update_leave_request(async_client: AsyncClient, annual: LeaveType) -> None:
    created = await _submit(async_client, annual)

    resp = await async_client.patch(
        f"{REQUESTS_URL}/{created['id']}",
        json={"end_date": "2025-03-04", "reason": "Back early"},
        headers=headers(EMPLOYEE_ID),
    )

    assert resp.status_code == 200, resp.text
    data = resp.json()
    assert (data["end_date"], data["units"], data["reason"]) == ("2025-03-04", 2.0, "Back early")
    balance = await async_client.get(_balance_url(EMPLOYEE_ID, annual.id), headers=headers(EMPLOYEE_ID))
    assert balance.json()["pending"] == 2.0

    trail = await async_client.get(f"{REQUESTS_URL}/{created['id']}/audit", headers=headers(EMPLOYEE_ID))
    assert [i["action"] for i in trail.json()["items"]] == ["LEAVE_REQUEST_CREATED", "LEAVE_REQUEST_UPDATED"]


async def test_update_leave_request_errors(async_client: AsyncClient, annual: LeaveType) -> None:
    created = await _submit(async_client, annual)
    url = f"{REQUESTS_URL}/{created['id']}"

    inverted = await async_client.patch(
        url, json={"start_date": "2025-03-07", "end_date": "2025-03-03"}, headers=headers(EMPLOYEE_ID)
    )
    assert inverted.status_code == 422

    foreign = await async_client.patch(url, json={"reason": "mine now"}, headers=headers(MANAGER_ID))
    assert foreign.status_code == 403

    await _decide(async_client, created["id"], "manager", MANAGER_ID)
    decided = await async_client.patch(url, json={"reason": "too late"}, headers=headers(EMPLOYEE_ID))
    assert decided.status_code == 409


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


async def test_get_request_visibility(async_client: AsyncClient, annual: LeaveType) -> None:
    created = await _submit(async_client, annual)
    url = f"{REQUESTS_URL}/{created['id']}"

    assert (await async_client.get(url, headers=headers(EMPLOYEE_ID))).status_code == 200
    assert (await async_client.get(url, headers=headers(MANAGER_ID))).status_code == 200
    assert (await async_client.get(url, headers=headers(OTHER_EMPLOYEE_ID))).status_code == 403


async def test_get_unknown_request(async_client: AsyncClient) -> None:
    resp = await async_client.get(f"{REQUESTS_URL}/{uuid.uuid4()}", headers=headers(HR_ID))

    assert resp.status_code == 404


async def test_list_requests_scoped_for_employees(async_client: AsyncClient, annual: LeaveType) -> None:
    await _submit(async_client, annual)
    await _submit(async_client, annual, "2025-03-10", "2025-03-10", actor=OTHER_EMPLOYEE_ID)

    own = await async_client.get(REQUESTS_URL, headers=headers(EMPLOYEE_ID))
    assert own.status_code == 200
    assert own.json()["total"] == 1
    assert own.json()["items"][0]["user_id"] == str(EMPLOYEE_ID)

    everyone = await async_client.get(REQUESTS_URL, headers=headers(MANAGER_ID))
    assert everyone.json()["total"] == 2

    snooping = await async_client.get(
        REQUESTS_URL, params={"user_id": str(OTHER_EMPLOYEE_ID)}, headers=headers(EMPLOYEE_ID)
    )
    assert snooping.status_code == 403


async def test_list_requests_filters(async_client: AsyncClient, annual: LeaveType) -> None:
    first = await _submit(async_client, annual)
    await _submit(async_client, annual, "2025-06-02", "2025-06-03")
    await async_client.post(f"{REQUESTS_URL}/{first['id']}/cancel", headers=headers(EMPLOYEE_ID))

    cancelled = await async_client.get(REQUESTS_URL, params={"status": "cancelled"}, headers=headers(HR_ID))
    assert [item["id"] for item in cancelled.json()["items"]] == [first["id"]]

    june = await async_client.get(
        REQUESTS_URL, params={"start": "2025-06-01", "end": "2025-06-30"}, headers=headers(HR_ID)
    )
    assert june.json()["total"] == 1

    bad = await async_client.get(REQUESTS_URL, params={"status": "approved"}, headers=headers(HR_ID))
    assert bad.status_code == 422


async def test_list_requests_sorted(async_client: AsyncClient, annual: LeaveType) -> None:
    june = await _submit(async_client, annual, "2025-06-02", "2025-06-03")
    march = await _submit(async_client, annual)

    resp = await async_client.get(
        REQUESTS_URL,
        params={"sort_by": "start_date", "sort_direction": "asc"},
        headers=headers(EMPLOYEE_ID),
    )
    assert resp.status_code == 200
    assert [item["id"] for item in resp.json()["items"]] == [march["id"], june["id"]]

    bad = await async_client.get(REQUESTS_URL, params={"sort_by": "reason"}, headers=headers(EMPLOYEE_ID))
    assert bad.status_code == 422


async def test_pending_approvals_by_role(async_client: AsyncClient, annual: LeaveType) -> None:
    first = await _submit(async_client, annual)
    await _submit(async_client, annual, "2025-06-02", "2025-06-03")
    await _decide(async_client, first["id"], "manager", MANAGER_ID)
    url = f"{REQUESTS_URL}/pending-approvals"

    for_manager = await async_client.get(url, headers=headers(MANAGER_ID))
    assert for_manager.status_code == 200
    assert [item["status"] for item in for_manager.json()["items"]] == ["pending"]

    for_hr = await async_client.get(url, headers=headers(HR_ID))
    assert [item["id"] for item in for_hr.json()["items"]] == [first["id"]]

    for_employee = await async_client.get(url, headers=headers(EMPLOYEE_ID))
    assert for_employee.status_code == 403


async def test_audit_trail(async_client: AsyncClient, annual: LeaveType) -> None:
    created = await _submit(async_client, annual)
    await _decide(async_client, created["id"], "manager", MANAGER_ID, approve=False)

    resp = await async_client.get(f"{REQUESTS_URL}/{created['id']}/audit", headers=headers(EMPLOYEE_ID))

    assert resp.status_code == 200
    items = resp.json()["items"]
    assert [i["action"] for i in items] == ["LEAVE_REQUEST_CREATED", "MANAGER_REJECTION"]
    assert [i["new_status"] for i in items] == ["pending", "manager_rejected"]
    assert items[1]["previous_status"] == "pending"
    assert items[1]["performed_by_id"] == str(MANAGER_ID)


async def test_leave_statistics(async_client: AsyncClient, annual: LeaveType) -> None:
    await _submit(async_client, annual)

    resp = await async_client.get("/leave-statistics", headers=headers(HR_ID))

    assert resp.status_code == 200
    data = resp.json()
    assert data["pending_approvals"] == 1
    assert data["total_employees"] == 2
    assert [r["leave_type"]["name"] for r in data["leave_reports"]] == ["Annual", "Sick"]

    forbidden = await async_client.get("/leave-statistics", headers=headers(EMPLOYEE_ID))
    assert forbidden.status_code == 403


# ---------------------------------------------------------------------------
# Balances
# ---------------------------------------------------------------------------


async def test_get_balance_defaults(async_client: AsyncClient, annual: LeaveType) -> None:
    resp = await async_client.get(
        _balance_url(EMPLOYEE_ID, annual.id), params={"year": YEAR}, headers=headers(EMPLOYEE_ID)
    )

    assert resp.status_code == 200
    data = resp.json()
    assert data["allocated"] == 20.0
    assert data["available"] == 20.0


async def test_balance_visibility(async_client: AsyncClient, annual: LeaveType) -> None:
    resp = await async_client.get(
        _balance_url(EMPLOYEE_ID, annual.id), params={"year": YEAR}, headers=headers(OTHER_EMPLOYEE_ID)
    )
    listing = await async_client.get(
        _balance_url(EMPLOYEE_ID), params={"year": YEAR}, headers=headers(OTHER_EMPLOYEE_ID)
    )

    assert resp.status_code == 403
    assert listing.status_code == 403


async def test_list_balances(async_client: AsyncClient, store: InMemoryStore, annual: LeaveType) -> None:
    await _submit(async_client, annual)

    resp = await async_client.get(_balance_url(EMPLOYEE_ID), params={"year": YEAR}, headers=headers(MANAGER_ID))

    assert resp.status_code == 200
    data = resp.json()
    assert data["total"] == 1
    assert data["items"][0]["pending"] == 5.0


async def test_set_allocation(async_client: AsyncClient, annual: LeaveType) -> None:
    url = _balance_url(EMPLOYEE_ID, annual.id)

    forbidden = await async_client.put(url, json={"year": YEAR, "allocated": 25}, headers=headers(MANAGER_ID))
    assert forbidden.status_code == 403

    resp = await async_client.put(url, json={"year": YEAR, "allocated": 25}, headers=headers(HR_ID))
    assert resp.status_code == 200
    assert resp.json()["allocated"] == 25.0

    not_half = await async_client.put(url, json={"year": YEAR, "allocated": 2.3}, headers=headers(HR_ID))
    assert not_half.status_code == 422


async def test_set_allocation_below_pending(async_client: AsyncClient, annual: LeaveType) -> None:
    await _submit(async_client, annual)

    resp = await async_client.put(
        _balance_url(EMPLOYEE_ID, annual.id), json={"year": YEAR, "allocated": 4}, headers=headers(HR_ID)
    )

    assert resp.status_code == 422


# ---------------------------------------------------------------------------
# Reference data
# ---------------------------------------------------------------------------


async def test_list_leave_types(async_client: AsyncClient) -> None:
    resp = await async_client.get("/leave-types", headers=headers(EMPLOYEE_ID))

    assert resp.status_code == 200
    data = resp.json()
    assert data["total"] == 3
    assert [lt["name"] for lt in data["items"]] == ["Annual", "Sabbatical", "Sick"]


async def test_list_holidays(async_client: AsyncClient, store: InMemoryStore) -> None:
    store.seed_holiday(Holiday(name="New Year", date=date(2025, 1, 1)))
    store.seed_holiday(Holiday(name="Founders Day", date=date(2025, 3, 5)))
    store.seed_holiday(Holiday(name="New Year", date=date(2026, 1, 1)))

    resp = await async_client.get("/holidays", params={"year": 2025}, headers=headers(EMPLOYEE_ID))

    assert resp.status_code == 200
    assert [h["date"] for h in resp.json()["items"]] == ["2025-01-01", "2025-03-05"]


async def test_request_id_header_is_echoed(async_client: AsyncClient) -> None:
    resp = await async_client.get("/leave-types", headers={**headers(EMPLOYEE_ID), "X-Request-ID": "abc123"})

    assert resp.headers["X-Request-ID"] == "abc123"
