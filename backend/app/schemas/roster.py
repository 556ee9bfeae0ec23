"""
Roster Pydantic schemas.
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import Dict, List


class Student(BaseModel):
    """A student derived from the roster document."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str = Field(..., description="{class}-{group}-{name}")
    name: str
    class_name: str = Field(..., alias="class")
    group: str


class RejectedRosterEntry(BaseModel):
    """A malformed roster entry skipped while building the index."""
    model_config = ConfigDict(populate_by_name=True)

    class_name: str = Field(..., alias="class")
    group: str = ""
    reason: str


class RosterIndex(BaseModel):
    """Flat students, sorted classes and sorted groups per class."""
    model_config = ConfigDict(populate_by_name=True)

    students: List[Student] = Field(default_factory=list)
    classes: List[str] = Field(default_factory=list)
    groups_by_class: Dict[str, List[str]] = Field(default_factory=dict, alias="groupsByClass")
    rejected: List[RejectedRosterEntry] = Field(default_factory=list)

    def get(self, student_id: str):
        for student in self.students:
            if student.id == student_id:
                return student
        return None

    def __contains__(self, student_id: str) -> bool:
        return self.get(student_id) is not None

    @property
    def student_ids(self) -> List[str]:
        return [student.id for student in self.students]


class StudentUpsert(BaseModel):
    """Schema for adding or editing a roster student."""
    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., min_length=1, max_length=200)
    class_name: str = Field(..., alias="class", min_length=1, max_length=100)
    group: str = Field(..., min_length=1, max_length=50)


class RosterActionResponse(BaseModel):
    success: bool
    message: str
    student: Student
