"""
Roster API Endpoints.
"""

from fastapi import APIRouter, Depends
from backend.app.core.dependencies import get_current_user
from backend.app.db.document_store import DocumentStore, get_document_store
from backend.app.schemas.roster import RosterIndex
from backend.app.services.roster import RosterService

router = APIRouter(prefix="/roster", tags=["Roster"])


@router.get("", response_model=RosterIndex)
async def get_roster(
    current_user: dict = Depends(get_current_user),
    store: DocumentStore = Depends(get_document_store)
):
    """
    Flat student list with sorted classes and groups, for any signed-in user.
    """
    return await RosterService(store).load_index()
