"""
Integration tests for the committee score endpoints.
"""

import pytest
from backend.app.models.enums import Collections, SystemStatus


@pytest.mark.asyncio
async def test_adjust_score_from_default(client, seeded_store, panitia_headers):
    response = await client.put(
        "/v1/panitia/scores/A-1-Ani",
        json={"newScore": 70, "reason": "late submission", "committeeName": "Alice"},
        headers=panitia_headers,
    )

    assert response.status_code == 200
    data = response.json()
    assert data["remainingScore"] == 70
    assert data["scoreNote"] == "late submission"
    assert data["class"] == "A"
    assert len(data["history"]) == 1
    record = data["history"][0]
    assert record["previousScore"] == 100
    assert record["newScore"] == 70
    assert record["reduction"] == 30
    assert record["reason"] == "late submission"
    assert record["committeeName"] == "Alice"


@pytest.mark.asyncio
async def test_adjust_response_is_the_written_ledger(client, seeded_store, panitia_headers, mocker):
    from backend.app.services.adjustment import AdjustmentService

    read_spy = mocker.spy(AdjustmentService, "read_ledger")

    response = await client.put(
        "/v1/panitia/scores/A-1-Ani",
        json={"newScore": 80, "reason": "late"},
        headers=panitia_headers,
    )

    assert response.status_code == 200
    assert response.json()["remainingScore"] == 80
    # Only the read that precedes the write
    assert read_spy.call_count == 1


@pytest.mark.asyncio
async def test_committee_name_defaults_to_caller(client, seeded_store, panitia_headers):
    response = await client.put(
        "/v1/panitia/scores/A-1-Ani",
        json={"newScore": 90, "reason": "noisy"},
        headers=panitia_headers,
    )

    assert response.status_code == 200
    assert response.json()["history"][0]["committeeName"] == "Rina"


@pytest.mark.asyncio
async def test_reduction_without_reason_rejected(client, seeded_store, panitia_headers):
    response = await client.put(
        "/v1/panitia/scores/A-1-Ani",
        json={"newScore": 50, "reason": ""},
        headers=panitia_headers,
    )

    assert response.status_code == 422
    body = response.json()
    assert body["error_code"] == "ERR_SCORE_002"
    assert body["details"] == {"missing": ["reason"]}
    assert await seeded_store.get(Collections.STUDENT_SCORES, "A-1-Ani") is None


@pytest.mark.asyncio
@pytest.mark.parametrize("value", [101, -5, 12.5, "eighty"])
async def test_out_of_range_score_rejected(client, seeded_store, panitia_headers, value):
    response = await client.put(
        "/v1/panitia/scores/A-1-Ani",
        json={"newScore": value, "reason": "late"},
        headers=panitia_headers,
    )

    assert response.status_code == 422
    assert response.json()["error_code"] == "ERR_SCORE_001"
    assert await seeded_store.get(Collections.STUDENT_SCORES, "A-1-Ani") is None


@pytest.mark.asyncio
@pytest.mark.parametrize("literal", ["NaN", "Infinity", "-Infinity", "1e400"])
async def test_non_finite_score_rejected(client, seeded_store, panitia_headers, literal):
    response = await client.put(
        "/v1/panitia/scores/A-1-Ani",
        content='{"newScore": %s, "reason": "late"}' % literal,
        headers={**panitia_headers, "Content-Type": "application/json"},
    )

    assert response.status_code == 422
    body = response.json()
    assert body["error_code"] == "ERR_SCORE_001"
    assert body["details"]["score"] in {"nan", "inf", "-inf"}
    assert await seeded_store.get(Collections.STUDENT_SCORES, "A-1-Ani") is None


@pytest.mark.asyncio
async def test_unknown_student(client, seeded_store, panitia_headers):
    response = await client.put(
        "/v1/panitia/scores/Z-9-Ghost",
        json={"newScore": 90, "reason": "late"},
        headers=panitia_headers,
    )

    assert response.status_code == 404
    assert response.json()["error_code"] == "ERR_STUDENT_404"


@pytest.mark.asyncio
async def test_each_adjustment_appends_history(client, seeded_store, panitia_headers):
    scores = [90, 80, 85, 60]
    for score in scores:
        response = await client.put(
            "/v1/panitia/scores/A-2-Citra",
            json={"newScore": score, "reason": f"step {score}"},
            headers=panitia_headers,
        )
        assert response.status_code == 200

    detail = (await client.get("/v1/panitia/scores/A-2-Citra", headers=panitia_headers)).json()
    assert [r["newScore"] for r in detail["history"]] == scores
    assert [r["previousScore"] for r in detail["history"]] == [100, 90, 80, 85]
    assert detail["remainingScore"] == 60


@pytest.mark.asyncio
async def test_list_scores_with_filters(client, seeded_store, panitia_headers, admin_headers):
    await client.put(
        "/v1/panitia/scores/B-10-Dewi",
        json={"newScore": 80, "reason": "late"},
        headers=panitia_headers,
    )

    response = await client.get("/v1/panitia/scores", params={"class": "B"}, headers=admin_headers)

    assert response.status_code == 200
    data = response.json()
    assert [s["id"] for s in data["students"]] == ["B-10-Dewi", "B-2-Eka"]
    assert data["summary"] == {"totalStudents": 2, "totalUsedScore": 20, "averageRemaining": 90.0}


@pytest.mark.asyncio
async def test_admin_cannot_adjust(client, seeded_store, admin_headers):
    response = await client.put(
        "/v1/panitia/scores/A-1-Ani",
        json={"newScore": 90, "reason": "late"},
        headers=admin_headers,
    )

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_dosen_cannot_view_ledgers(client, seeded_store, dosen_headers):
    response = await client.get("/v1/panitia/scores", headers=dosen_headers)

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_locked_committee_system(client, seeded_store, panitia_headers, admin_headers):
    await seeded_store.set(
        Collections.SYSTEM, Collections.STATUS_DOCUMENT,
        {"dosenStatus": SystemStatus.OPEN.value, "panitiaStatus": SystemStatus.LOCKED.value},
    )

    locked = await client.put(
        "/v1/panitia/scores/A-1-Ani",
        json={"newScore": 90, "reason": "late"},
        headers=panitia_headers,
    )
    assert locked.status_code == 423
    assert locked.json()["error_code"] == "ERR_LOCKED_423"

    # Admins are never locked out
    assert (await client.get("/v1/panitia/scores", headers=admin_headers)).status_code == 200
