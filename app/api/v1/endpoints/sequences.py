"""Identifier sequence endpoints used by sibling services."""

from fastapi import APIRouter, status

from app.dependencies import CurrentActor, DatabaseSession
from app.schemas.sequences import SequenceIdResponse, SequenceStateResponse
from app.services.sequence_service import SequenceService

router = APIRouter()


@router.post(
    "/{sequence_type}/next",
    response_model=SequenceIdResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Issue the next identifier",
)
async def issue_identifier(
    sequence_type: str,
    actor: CurrentActor,
    db: DatabaseSession,
) -> SequenceIdResponse:
    """
    Issue the next identifier of a category, e.g. ``LAB-2025-000042``.

    Args:
        sequence_type: Identifier category
        actor: Authenticated caller
        db: Database session

    Returns:
        Issued identifier
    """
    service = SequenceService(db)
    return await service.issue(sequence_type)


@router.get(
    "/{sequence_type}",
    response_model=SequenceStateResponse,
    status_code=status.HTTP_200_OK,
    summary="Get sequence state",
)
async def get_sequence_state(
    sequence_type: str,
    actor: CurrentActor,
    db: DatabaseSession,
) -> SequenceStateResponse:
    """Get the current counter of a category without issuing an identifier."""
    service = SequenceService(db)
    return await service.peek(sequence_type)
