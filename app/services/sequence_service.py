"""Human-readable identifier generation backed by the id_sequences table."""

from dataclasses import dataclass
from datetime import date

import structlog
from sqlalchemy import case, func, insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ConfigurationException
from app.database import guarded, unit_of_work
from app.models.sequences import id_sequences
from app.schemas.sequences import (
    ResetPolicy,
    SequenceIdResponse,
    SequenceStateResponse,
    SequenceType,
)

logger = structlog.get_logger()


@dataclass(frozen=True)
class SequenceDefinition:
    """Prefix, width and reset policy of a sequence category."""

    prefix: str
    padding_length: int = 6
    reset_policy: ResetPolicy = ResetPolicy.YEARLY


SEQUENCE_DEFAULTS: dict[SequenceType, SequenceDefinition] = {
    SequenceType.APPOINTMENT: SequenceDefinition("APT"),
    SequenceType.ADMISSION: SequenceDefinition("ADM"),
    SequenceType.LAB_ORDER: SequenceDefinition("LAB"),
    SequenceType.MRN: SequenceDefinition("MRN"),
    SequenceType.TEMP_MRN: SequenceDefinition("TEMP", 4, ResetPolicy.DAILY),
    SequenceType.ER_VISIT: SequenceDefinition("ER"),
    SequenceType.PRESCRIPTION: SequenceDefinition("RX"),
    SequenceType.INVOICE: SequenceDefinition("INV"),
}


def epoch_key(policy: ResetPolicy | str, today: date) -> str:
    """Counter epoch a date belongs to under a reset policy."""
    policy = ResetPolicy(policy)
    if policy == ResetPolicy.DAILY:
        return today.strftime("%Y%m%d")
    if policy == ResetPolicy.YEARLY:
        return today.strftime("%Y")
    return ""


def format_identifier(prefix: str, value: int, padding_length: int, epoch: str) -> str:
    """
    Render an identifier such as ``APT-2025-000001`` or ``TEMP-20250310-0001``.

    Args:
        prefix: Category prefix
        value: Counter value within the epoch
        padding_length: Zero-padded width of the counter
        epoch: Epoch key, empty for sequences that never reset

    Returns:
        Formatted identifier
    """
    padded = str(value).zfill(padding_length)
    if epoch:
        return f"{prefix}-{epoch}-{padded}"
    return f"{prefix}-{padded}"


def parse_sequence_type(sequence_type: SequenceType | str) -> SequenceType:
    """Resolve a category name, rejecting unknown ones."""
    try:
        return SequenceType(sequence_type)
    except ValueError:
        raise ConfigurationException(f"Unknown sequence type: {sequence_type}") from None


class SequenceService:
    """Service issuing gap-tolerant, collision-free identifiers per category."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db

    async def next_id(self, sequence_type: SequenceType | str) -> str:
        """
        Issue the next identifier of a category inside the caller's transaction.

        The counter row stays locked until the caller commits or rolls back,
        so a rolled-back caller never consumes a number.

        Args:
            sequence_type: Identifier category

        Returns:
            Formatted identifier

        Raises:
            ConfigurationException: If the category is unknown
        """
        seq_type = parse_sequence_type(sequence_type)
        today = date.today()

        row = await self._increment(seq_type, today)
        if row is None:
            await self._seed(seq_type)
            row = await self._increment(seq_type, today)

        identifier = format_identifier(
            row.prefix, row.current_value, row.padding_length, row.epoch_key
        )
        logger.debug("sequence_id_issued", sequence_type=seq_type.value, value=identifier)
        return identifier

    async def issue(self, sequence_type: SequenceType | str) -> SequenceIdResponse:
        """Issue an identifier in a transaction of its own."""
        seq_type = parse_sequence_type(sequence_type)
        async with unit_of_work(self.db, "issue_sequence_id", "Failed to generate identifier"):
            value = await self.next_id(seq_type)

        logger.info("sequence_id_generated", sequence_type=seq_type.value, value=value)
        return SequenceIdResponse(sequence_type=seq_type, value=value)

    async def peek(self, sequence_type: SequenceType | str) -> SequenceStateResponse:
        """
        Get the current counter state without issuing anything.

        A category that has never issued an identifier reports its defaults
        with a counter of zero.
        """
        seq_type = parse_sequence_type(sequence_type)
        async with guarded("peek_sequence", "Failed to read sequence state"):
            result = await self.db.execute(
                select(id_sequences).where(id_sequences.c.sequence_type == seq_type.value)
            )
            row = result.fetchone()

        if row:
            return SequenceStateResponse.model_validate(dict(row._mapping))

        definition = SEQUENCE_DEFAULTS[seq_type]
        return SequenceStateResponse(
            sequence_type=seq_type,
            prefix=definition.prefix,
            padding_length=definition.padding_length,
            current_value=0,
            reset_policy=definition.reset_policy,
            epoch_key="",
        )

    async def _increment(self, seq_type: SequenceType, today: date):
        """Atomically advance the counter, restarting at 1 in a new epoch."""
        current_epoch = case(
            (id_sequences.c.reset_policy == ResetPolicy.DAILY.value, today.strftime("%Y%m%d")),
            (id_sequences.c.reset_policy == ResetPolicy.YEARLY.value, today.strftime("%Y")),
            else_="",
        )
        stmt = (
            update(id_sequences)
            .where(id_sequences.c.sequence_type == seq_type.value)
            .values(
                current_value=case(
                    (id_sequences.c.epoch_key == current_epoch, id_sequences.c.current_value + 1),
                    else_=1,
                ),
                epoch_key=current_epoch,
                last_updated=func.now(),
            )
            .returning(
                id_sequences.c.prefix,
                id_sequences.c.padding_length,
                id_sequences.c.current_value,
                id_sequences.c.epoch_key,
            )
        )
        result = await self.db.execute(stmt)
        return result.fetchone()

    async def _seed(self, seq_type: SequenceType) -> None:
        """Create the counter row for a category on first use."""
        definition = SEQUENCE_DEFAULTS[seq_type]
        try:
            async with self.db.begin_nested():
                await self.db.execute(
                    insert(id_sequences).values(
                        sequence_type=seq_type.value,
                        prefix=definition.prefix,
                        padding_length=definition.padding_length,
                        current_value=0,
                        reset_policy=definition.reset_policy.value,
                        epoch_key="",
                    )
                )
            logger.info("sequence_initialized", sequence_type=seq_type.value)
        except IntegrityError:
            # Another transaction created the row first
            logger.info("sequence_already_initialized", sequence_type=seq_type.value)
