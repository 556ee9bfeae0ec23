"""
System control service.

Lecturer and committee access switches kept in system/status.
"""

import logging

from backend.app.core.exceptions import SystemLockedError
from backend.app.db.document_store import DocumentStore
from backend.app.models.enums import Collections, SystemStatus, UserRole
from backend.app.schemas.system import SystemStatusResponse

logger = logging.getLogger("englishcamp.system")

STATUS_FIELDS = {
    UserRole.DOSEN: "dosenStatus",
    UserRole.PANITIA: "panitiaStatus",
}


class SystemControlService:

    def __init__(self, store: DocumentStore):
        self.store = store

    async def get_status(self) -> SystemStatusResponse:
        """Current switches; the document is initialized to OPEN/OPEN when absent."""
        document = await self.store.get(Collections.SYSTEM, Collections.STATUS_DOCUMENT)
        if document is None:
            status = SystemStatusResponse()
            await self.store.set(Collections.SYSTEM, Collections.STATUS_DOCUMENT, status.model_dump(mode="json", by_alias=True))
            return status

        return SystemStatusResponse(
            dosen_status=document.get("dosenStatus") or SystemStatus.OPEN,
            panitia_status=document.get("panitiaStatus") or SystemStatus.OPEN,
        )

    @staticmethod
    def _field(role: UserRole) -> str:
        if role not in STATUS_FIELDS:
            raise ValueError(f"Role {role.value} has no system switch")
        return STATUS_FIELDS[role]

    async def set_status(self, role: UserRole, status: SystemStatus) -> SystemStatusResponse:
        await self.store.set(
            Collections.SYSTEM,
            Collections.STATUS_DOCUMENT,
            {self._field(role): status.value},
            merge=True,
        )
        logger.info("%s system set to %s", role.value, status.value)
        return await self.get_status()

    async def toggle(self, role: UserRole) -> SystemStatusResponse:
        current = await self.get_status()
        value = current.dosen_status if role == UserRole.DOSEN else current.panitia_status
        new_status = SystemStatus.LOCKED if value == SystemStatus.OPEN else SystemStatus.OPEN
        return await self.set_status(role, new_status)

    async def ensure_open(self, role: UserRole) -> None:
        """Raise SystemLockedError when the role's system is locked. Admins are never locked."""
        if role not in STATUS_FIELDS:
            return
        document = await self.store.get(Collections.SYSTEM, Collections.STATUS_DOCUMENT) or {}
        if document.get(self._field(role)) == SystemStatus.LOCKED.value:
            raise SystemLockedError(role.value)
