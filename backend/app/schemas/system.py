"""
System control schemas.
"""

from pydantic import BaseModel, ConfigDict, Field
from backend.app.models.enums import SystemStatus


class SystemStatusResponse(BaseModel):
    """Lecturer and committee access switches."""
    model_config = ConfigDict(populate_by_name=True)

    dosen_status: SystemStatus = Field(SystemStatus.OPEN, alias="dosenStatus")
    panitia_status: SystemStatus = Field(SystemStatus.OPEN, alias="panitiaStatus")


class SetSystemStatusRequest(BaseModel):
    status: SystemStatus
