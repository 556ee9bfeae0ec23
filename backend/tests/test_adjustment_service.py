"""
Score adjustment service tests.

Covers validation, the justification rule for reductions, the ledger
history and both consistency modes.
"""

import pytest
from backend.app.core.exceptions import (
    InvalidScoreError,
    MissingJustificationError,
    UnknownStudentError,
)
from backend.app.models.enums import Collections
from backend.app.services.adjustment import AdjustmentService


class FixedClock:
    """Deterministic, strictly increasing timestamps."""

    def __init__(self):
        self.ticks = 0

    def __call__(self) -> str:
        self.ticks += 1
        return f"2025-01-01T00:00:{self.ticks:02d}.000Z"


@pytest.fixture(params=["merge", "transactional"])
def service(request, seeded_memory_store):
    return AdjustmentService(seeded_memory_store, clock=FixedClock(), consistency=request.param)


@pytest.mark.asyncio
async def test_first_reduction_creates_ledger(service):
    ledger = await service.adjust_score("A-1-Ani", 90, "late", "Rina")

    assert ledger.remaining_score == 90
    assert ledger.score_note == "late"
    assert len(ledger.history) == 1
    record = ledger.history[0]
    assert (record.previous_score, record.new_score, record.reduction) == (100, 90, 10)
    assert record.committee_name == "Rina"
    assert record.reason == "late"
    assert record.timestamp == ledger.updated_at

    stored = await service.store.get(Collections.STUDENT_SCORES, "A-1-Ani")
    assert stored["remainingScore"] == 90
    assert stored["history"][0]["previousScore"] == 100


@pytest.mark.asyncio
async def test_history_chain_is_consistent(service):
    await service.adjust_score("A-1-Ani", 90, "late", "Rina")
    await service.adjust_score("A-1-Ani", 75, "noisy", "Tono")
    ledger = await service.adjust_score("A-1-Ani", 80, "", "Rina")

    history = ledger.history
    assert [r.new_score for r in history] == [90, 75, 80]
    for earlier, later in zip(history, history[1:]):
        assert later.previous_score == earlier.new_score
    for record in history:
        assert record.reduction == record.previous_score - record.new_score
    assert ledger.remaining_score == history[-1].new_score


@pytest.mark.asyncio
async def test_unchanged_score_still_recorded(service):
    ledger = await service.adjust_score("A-1-Ani", 100, "", "Rina")

    assert ledger.remaining_score == 100
    assert ledger.history[0].reduction == 0


@pytest.mark.asyncio
async def test_reduction_requires_reason(service):
    with pytest.raises(MissingJustificationError) as exc_info:
        await service.adjust_score("A-1-Ani", 50, "   ", "Rina")

    assert exc_info.value.details == {"missing": ["reason"]}
    assert await service.read_ledger("A-1-Ani") is None


@pytest.mark.asyncio
async def test_reduction_requires_committee_name(service):
    with pytest.raises(MissingJustificationError) as exc_info:
        await service.adjust_score("A-1-Ani", 50, "late", "")

    assert exc_info.value.details == {"missing": ["committeeName"]}


@pytest.mark.asyncio
async def test_increase_keeps_note_below_max(service):
    await service.adjust_score("A-1-Ani", 70, "late", "Rina")
    ledger = await service.adjust_score("A-1-Ani", 85, "", "Rina")

    assert ledger.remaining_score == 85
    assert ledger.score_note == "late"
    assert ledger.history[-1].reduction == -15


@pytest.mark.asyncio
async def test_increase_to_max_clears_note(service):
    await service.adjust_score("A-1-Ani", 70, "late", "Rina")
    ledger = await service.adjust_score("A-1-Ani", 100, "", "Rina")

    assert ledger.remaining_score == 100
    assert ledger.score_note == ""


@pytest.mark.asyncio
async def test_increase_with_reason_replaces_note(service):
    await service.adjust_score("A-1-Ani", 70, "late", "Rina")
    ledger = await service.adjust_score("A-1-Ani", 80, "appeal accepted", "Rina")

    assert ledger.score_note == "appeal accepted"


@pytest.mark.parametrize("value", [-1, 101, 50.5, "50", None, True])
@pytest.mark.asyncio
async def test_invalid_scores_rejected(service, value):
    with pytest.raises(InvalidScoreError):
        await service.adjust_score("A-1-Ani", value, "late", "Rina")

    assert await service.read_ledger("A-1-Ani") is None


@pytest.mark.asyncio
async def test_integral_float_accepted(service):
    ledger = await service.adjust_score("A-1-Ani", 60.0, "late", "Rina")

    assert ledger.remaining_score == 60


@pytest.mark.asyncio
async def test_bounds_accepted(service):
    assert (await service.adjust_score("A-1-Ani", 0, "absent", "Rina")).remaining_score == 0
    assert (await service.adjust_score("A-1-Budi", 100, "", "Rina")).remaining_score == 100


@pytest.mark.asyncio
async def test_unknown_student_rejected(service):
    with pytest.raises(UnknownStudentError):
        await service.adjust_score("Z-1-Nobody", 90, "late", "Rina")

    assert await service.store.get(Collections.STUDENT_SCORES, "Z-1-Nobody") is None


@pytest.mark.asyncio
async def test_legacy_ledger_without_history(service):
    await service.store.set(Collections.STUDENT_SCORES, "A-1-Ani", {"remainingScore": 80, "scoreNote": None})

    ledger = await service.adjust_score("A-1-Ani", 70, "late", "Rina")

    assert ledger.history[0].previous_score == 80
    assert len(ledger.history) == 1


@pytest.mark.asyncio
async def test_get_ledger_defaults(service):
    detail = await service.get_ledger("B-10-Dewi")

    assert detail.remaining_score == 100
    assert detail.score_note == ""
    assert detail.history == []
    assert detail.class_name == "B"


@pytest.mark.asyncio
async def test_list_ledgers_filters_and_summary(service):
    await service.adjust_score("A-1-Ani", 90, "late", "Rina")
    await service.adjust_score("A-2-Citra", 70, "noisy", "Rina")

    everyone = await service.list_ledgers()
    assert [row.name for row in everyone.students] == ["Ani", "Budi", "Citra", "Dewi", "Eka"]
    assert everyone.summary.total_students == 5
    assert everyone.summary.total_used_score == 40
    assert everyone.summary.average_remaining == 92.0

    class_a = await service.list_ledgers(class_name="A", group="1")
    assert [row.id for row in class_a.students] == ["A-1-Ani", "A-1-Budi"]

    searched = await service.list_ledgers(search="CIT")
    assert [row.remaining_score for row in searched.students] == [70]

    empty = await service.list_ledgers(class_name="Z")
    assert empty.summary.total_students == 0
    assert empty.summary.average_remaining == 0
