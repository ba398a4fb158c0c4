"""Tests for identifier sequence generation."""

import asyncio
from datetime import date

import pytest
from sqlalchemy import select, update

from app.core.exceptions import ConfigurationException
from app.models.sequences import id_sequences
from app.schemas.sequences import ResetPolicy, SequenceType
from app.services.sequence_service import SequenceService, epoch_key, format_identifier


def test_format_identifier_yearly():
    """Yearly identifiers embed the year."""
    assert format_identifier("APT", 1, 6, "2025") == "APT-2025-000001"
    assert format_identifier("LAB", 42, 6, "2025") == "LAB-2025-000042"


def test_format_identifier_daily_and_never():
    """Daily identifiers embed the date; never-resetting ones embed nothing."""
    assert format_identifier("TEMP", 1, 4, "20250310") == "TEMP-20250310-0001"
    assert format_identifier("INV", 7, 6, "") == "INV-000007"


def test_format_identifier_value_wider_than_padding():
    """Values wider than the padding are not truncated."""
    assert format_identifier("ER", 1234567, 6, "2025") == "ER-2025-1234567"


def test_epoch_key():
    """Epoch keys follow the reset policy."""
    day = date(2025, 3, 10)
    assert epoch_key(ResetPolicy.YEARLY, day) == "2025"
    assert epoch_key(ResetPolicy.DAILY, day) == "20250310"
    assert epoch_key(ResetPolicy.NEVER, day) == ""


@pytest.mark.asyncio
async def test_first_appointment_number(db_session):
    """The first identifier of a category is 1 and seeds its counter row."""
    service = SequenceService(db_session)

    value = await service.next_id(SequenceType.APPOINTMENT)
    await db_session.commit()

    assert value == f"APT-{date.today().year}-000001"

    result = await db_session.execute(
        select(id_sequences).where(id_sequences.c.sequence_type == "appointment")
    )
    row = result.fetchone()
    assert row.current_value == 1
    assert row.epoch_key == str(date.today().year)
    await db_session.commit()


@pytest.mark.asyncio
async def test_identifiers_increase(db_session):
    """Successive identifiers are strictly increasing."""
    service = SequenceService(db_session)

    values = [await service.next_id("lab_order") for _ in range(3)]
    await db_session.commit()

    year = date.today().year
    assert values == [f"LAB-{year}-000001", f"LAB-{year}-000002", f"LAB-{year}-000003"]


@pytest.mark.asyncio
async def test_categories_are_independent(db_session):
    """Each category keeps its own counter."""
    service = SequenceService(db_session)

    await service.next_id(SequenceType.APPOINTMENT)
    await service.next_id(SequenceType.APPOINTMENT)
    mrn = await service.next_id(SequenceType.MRN)
    await db_session.commit()

    assert mrn == f"MRN-{date.today().year}-000001"


@pytest.mark.asyncio
async def test_temp_mrn_resets_daily(db_session):
    """Temporary MRNs carry the date and a four digit counter."""
    service = SequenceService(db_session)

    value = await service.next_id(SequenceType.TEMP_MRN)
    await db_session.commit()

    assert value == f"TEMP-{date.today().strftime('%Y%m%d')}-0001"


@pytest.mark.asyncio
async def test_counter_restarts_in_new_epoch(db_session):
    """A counter left over from a previous year restarts at 1."""
    service = SequenceService(db_session)
    await service.next_id(SequenceType.INVOICE)
    await db_session.execute(
        update(id_sequences)
        .where(id_sequences.c.sequence_type == "invoice")
        .values(current_value=987, epoch_key="1999")
    )
    await db_session.commit()

    value = await service.next_id(SequenceType.INVOICE)
    await db_session.commit()

    assert value == f"INV-{date.today().year}-000001"


@pytest.mark.asyncio
async def test_never_policy_keeps_counting(db_session):
    """A sequence that never resets omits the epoch and keeps counting."""
    service = SequenceService(db_session)
    await service.next_id(SequenceType.PRESCRIPTION)
    await db_session.execute(
        update(id_sequences)
        .where(id_sequences.c.sequence_type == "prescription")
        .values(reset_policy="never", epoch_key="", current_value=41)
    )
    await db_session.commit()

    value = await service.next_id(SequenceType.PRESCRIPTION)
    await db_session.commit()

    assert value == "RX-000042"


@pytest.mark.asyncio
async def test_unknown_category_rejected(db_session):
    """Unknown categories raise a configuration error."""
    service = SequenceService(db_session)

    with pytest.raises(ConfigurationException):
        await service.next_id("boarding_pass")


@pytest.mark.asyncio
async def test_rolled_back_caller_does_not_consume_number(db_session):
    """A number issued inside a rolled back transaction is issued again."""
    service = SequenceService(db_session)
    await service.next_id(SequenceType.ADMISSION)
    await db_session.commit()

    await service.next_id(SequenceType.ADMISSION)
    await db_session.rollback()

    value = await service.next_id(SequenceType.ADMISSION)
    await db_session.commit()

    assert value == f"ADM-{date.today().year}-000002"


@pytest.mark.asyncio
async def test_concurrent_issue_yields_distinct_numbers(session_factory, seed):
    """Concurrent callers never receive the same identifier."""

    async def issue_one() -> str:
        async with session_factory() as session:
            response = await SequenceService(session).issue(SequenceType.ER_VISIT)
            return response.value

    values = await asyncio.gather(*[issue_one() for _ in range(10)])

    year = date.today().year
    assert len(set(values)) == 10
    assert sorted(values) == [f"ER-{year}-{n:06d}" for n in range(1, 11)]


@pytest.mark.asyncio
async def test_peek_does_not_issue(db_session):
    """Peeking reports the counter without advancing it."""
    service = SequenceService(db_session)

    untouched = await service.peek(SequenceType.INVOICE)
    assert untouched.current_value == 0
    assert untouched.prefix == "INV"
    await db_session.commit()

    await service.issue(SequenceType.INVOICE)
    state = await service.peek(SequenceType.INVOICE)
    again = await service.peek(SequenceType.INVOICE)
    await db_session.commit()

    assert state.current_value == 1
    assert again.current_value == 1
    assert state.reset_policy == ResetPolicy.YEARLY
