"""
Role and status enumerations.

Defines the role types and system switches of the grading application.
"""

import enum


class UserRole(str, enum.Enum):
    """
    User role enumeration.

    Roles:
        ADMIN: Manages the roster, system switches, resets and reports
        DOSEN: Lecturer entering subject scores
        PANITIA: Committee member adjusting the deduction-based score
    """
    ADMIN = "admin"
    DOSEN = "dosen"
    PANITIA = "panitia"


class SystemStatus(str, enum.Enum):
    """Access switch for the lecturer and committee systems."""
    OPEN = "OPEN"
    LOCKED = "LOCKED"


class Collections:
    """Document store collection and document names."""
    STUDENTS = "students"
    ROSTER_DOCUMENT = "all_classes"
    STUDENT_SCORES = "studentScores"
    SUBJECT_SCORES = "scores"
    GROUP_NOTES = "groupNotes"
    SUBJECTS = "mata_kuliah"
    SUBJECTS_DOCUMENT = "list"
    SYSTEM = "system"
    STATUS_DOCUMENT = "status"
    USERS = "users"
    HISTORY = "history"
