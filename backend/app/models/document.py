"""
Document database model.

Backs the schemaless document store: one row per (collection, document_id),
the document body kept as JSON.
"""

from sqlalchemy import Column, String, DateTime, JSON
from sqlalchemy.sql import func
from backend.app.db.session import Base


class Document(Base):
    """
    Generic document row.

    Collections used by the application:
    - students/all_classes (roster)
    - studentScores/{studentId} (score ledgers)
    - scores, groupNotes (lecturer entries, auto ids)
    - mata_kuliah/list, system/status, users/{uid}
    - history (audit trail, auto ids)
    """
    __tablename__ = "documents"

    collection = Column(String(100), primary_key=True)
    document_id = Column(String(255), primary_key=True)

    data = Column(JSON, nullable=False, default=dict)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<Document(collection='{self.collection}', id='{self.document_id}')>"
