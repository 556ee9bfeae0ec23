"""
Reporting tests: sheet contents and CSV downloads.
"""

import csv
import io

import pytest
from backend.app.models.enums import Collections
from backend.app.schemas.reports import ReportSheet
from backend.app.services.adjustment import AdjustmentService
from backend.app.services.audit import get_audit_trail, log_event
from backend.app.services.reporting import ReportingService, render_csv
from backend.app.services.subject_scores import SubjectScoreService


class Clock:
    def __init__(self):
        self.ticks = 0

    def __call__(self):
        self.ticks += 1
        return f"2025-03-01T10:00:{self.ticks:02d}.000Z"


@pytest.fixture
async def adjusted_store(seeded_memory_store):
    service = AdjustmentService(seeded_memory_store, clock=Clock())
    await service.adjust_score("A-1-Ani", 90, "late", "Rina")
    await service.adjust_score("B-10-Dewi", 70, "absent", "Tono")
    await service.adjust_score("A-1-Ani", 80, "noisy", "Rina")
    return seeded_memory_store


@pytest.mark.asyncio
async def test_committee_recap(adjusted_store):
    report = await ReportingService(adjusted_store).build(ReportSheet.COMMITTEE_RECAP)

    assert report.total == 5
    assert [(r["Class"], r["Group"]) for r in report.rows] == [
        ("A", "1"), ("A", "1"), ("A", "2"), ("B", "2"), ("B", "10"),
    ]
    ani = report.rows[0]
    assert ani["Student Name"] == "Ani"
    assert ani["Remaining Score"] == 80
    assert ani["Used Score"] == 20
    assert ani["Notes"] == "noisy"
    assert report.rows[1]["Notes"] == "-"


@pytest.mark.asyncio
async def test_adjustment_history_newest_first(adjusted_store):
    report = await ReportingService(adjusted_store).build(ReportSheet.ADJUSTMENT_HISTORY)

    assert [r["Reason"] for r in report.rows] == ["noisy", "absent", "late"]
    assert report.rows[0]["Previous Score"] == 90
    assert report.rows[0]["Reduction"] == 10


@pytest.mark.asyncio
async def test_orphaned_ledgers_are_ignored(adjusted_store):
    await adjusted_store.set(Collections.STUDENT_SCORES, "Z-1-Gone", {
        "remainingScore": 10, "scoreNote": "x",
        "history": [{
            "timestamp": "2025-03-02T00:00:00.000Z", "committeeName": "Rina",
            "previousScore": 100, "newScore": 10, "reduction": 90, "reason": "x",
        }],
    })

    report = await ReportingService(adjusted_store).build(ReportSheet.ADJUSTMENT_HISTORY)

    assert report.total == 3


@pytest.mark.asyncio
async def test_committee_activity(adjusted_store):
    report = await ReportingService(adjusted_store).build(ReportSheet.COMMITTEE_ACTIVITY)

    assert report.rows == [
        {"Committee": "Rina", "Adjustments": 2, "Total Reduction": 20},
        {"Committee": "Tono", "Adjustments": 1, "Total Reduction": 30},
    ]


@pytest.mark.asyncio
async def test_subject_recap(seeded_memory_store):
    await seeded_memory_store.add(Collections.SUBJECT_SCORES, {
        "studentId": "A-1-Ani", "studentName": "Ani", "subject": "Grammar",
        "class": "A", "group": "1", "score": 40,
    })
    await seeded_memory_store.add(Collections.SUBJECT_SCORES, {
        "studentId": "A-1-Ani", "studentName": "Ani", "subject": "Grammar",
        "class": "A", "group": "1", "score": 35.5,
    })
    # Legacy entry without a student id and with a subject outside the list
    await seeded_memory_store.add(Collections.SUBJECT_SCORES, {
        "studentName": "Eka", "subject": "Drama", "class": "B", "group": "2", "score": 20,
    })

    report = await ReportingService(seeded_memory_store).build(ReportSheet.SUBJECT_RECAP)

    assert report.columns == ["Student", "Class", "Group", "Grammar", "Speaking", "Drama", "Total"]
    ani = report.rows[0]
    assert (ani["Grammar"], ani["Speaking"], ani["Total"]) == (75.5, 0, 75.5)
    eka = next(r for r in report.rows if r["Student"] == "Eka")
    assert (eka["Drama"], eka["Total"]) == (20, 20)


@pytest.fixture
async def submitted_store(seeded_memory_store):
    service = SubjectScoreService(seeded_memory_store)
    await service.submit_scores("Grammar", "B", "10", {"B-10-Dewi": 60}, notes="Needs practice")
    await service.submit_scores("Speaking", "A", "1", {"A-1-Ani": 80.5, "A-1-Budi": 0}, notes="Good focus")
    await service.submit_scores("Grammar", "B", "2", {}, notes="Absent today")
    return seeded_memory_store


@pytest.mark.asyncio
async def test_subject_scores_export(submitted_store):
    report = await ReportingService(submitted_store).build(ReportSheet.SCORES)

    assert report.columns == ["Student Name", "Subject", "Class", "Group", "Score", "Date Input"]
    assert [(r["Student Name"], r["Subject"], r["Score"]) for r in report.rows] == [
        ("Ani", "Speaking", 80.5), ("Dewi", "Grammar", 60),
    ]
    assert len(report.rows[0]["Date Input"]) == len("2025-03-01")


@pytest.mark.asyncio
async def test_lecturer_notes(submitted_store):
    report = await ReportingService(submitted_store).build(ReportSheet.LECTURER_NOTES)

    assert report.columns == ["Class", "Group", "Subject", "Notes", "Created At"]
    assert [(r["Class"], r["Group"], r["Notes"]) for r in report.rows] == [
        ("A", "1", "Good focus"), ("B", "2", "Absent today"), ("B", "10", "Needs practice"),
    ]
    assert report.rows[0]["Subject"] == "Speaking"


@pytest.mark.asyncio
async def test_audit_log_sheet_is_not_truncated(seeded_memory_store):
    for i in range(150):
        await log_event(seeded_memory_store, "STUDENT_ADDED", performed_by="Admin", details=f"student {i}")

    report = await ReportingService(seeded_memory_store).build(ReportSheet.AUDIT_LOG)

    assert report.total == 150
    assert len(await get_audit_trail(seeded_memory_store)) == 100


def test_render_csv():
    from backend.app.schemas.reports import ReportResponse

    report = ReportResponse(
        sheet=ReportSheet.COMMITTEE_ACTIVITY,
        columns=["Committee", "Adjustments"],
        rows=[{"Committee": "Rina, Jr.", "Adjustments": 2, "Extra": "ignored"}],
        total=1,
    )

    rows = list(csv.reader(io.StringIO(render_csv(report))))

    assert rows == [["Committee", "Adjustments"], ["Rina, Jr.", "2"]]


@pytest.mark.asyncio
async def test_report_endpoint(client, seeded_store, admin_headers, panitia_headers):
    await client.put(
        "/v1/panitia/scores/A-1-Budi",
        json={"newScore": 95, "reason": "late"},
        headers=panitia_headers,
    )

    response = await client.get("/v1/reports/committee-recap", headers=admin_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["sheet"] == "committee-recap"
    assert data["total"] == 5
    budi = next(r for r in data["rows"] if r["Student Name"] == "Budi")
    assert budi["Remaining Score"] == 95


@pytest.mark.asyncio
async def test_report_download(client, seeded_store, admin_headers):
    response = await client.get("/v1/reports/committee-recap/download", headers=admin_headers)

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    disposition = response.headers["content-disposition"]
    assert disposition.startswith('attachment; filename="committee-recap-')
    assert disposition.endswith('.csv"')
    lines = response.text.splitlines()
    assert lines[0] == "Student Name,Class,Group,Remaining Score,Used Score,Notes"
    assert len(lines) == 6


@pytest.mark.asyncio
async def test_unknown_sheet(client, seeded_store, admin_headers):
    response = await client.get("/v1/reports/grades", headers=admin_headers)

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_reports_are_admin_only(client, seeded_store, panitia_headers):
    response = await client.get("/v1/reports/audit-log", headers=panitia_headers)

    assert response.status_code == 403
