"""
Store seeding script for the roster, subjects and system switches.

Reads JSON files from a data directory and writes them into the document
store selected by DOCUMENT_STORE_BACKEND:

    students.json     -> students/all_classes     {class: {group: [names]}}
    mata_kuliah.json  -> mata_kuliah/list         {"mata_kuliah": [...]}
    lock_status.json  -> system/status            {"dosenStatus", "panitiaStatus"}
    scores.json       -> scores/*                 list of entries or {id: entry}
    users.json        -> users/{uid}              {uid: {email, name, role}} (optional)

Usage:
    python -m backend.seed_data ./data
"""

import asyncio
import json
import sys
from pathlib import Path

from backend.app.core.config import settings
from backend.app.db.document_store import DocumentStore, build_document_store
from backend.app.db.session import create_tables
from backend.app.models.enums import Collections, SystemStatus, UserRole


def read_json(path: Path):
    with path.open(encoding="utf-8") as handle:
        return json.load(handle)


async def seed_roster(store: DocumentStore, data_dir: Path) -> None:
    roster = read_json(data_dir / "students.json")
    await store.set(Collections.STUDENTS, Collections.ROSTER_DOCUMENT, roster)
    print(f"✅ Students uploaded ({len(roster)} classes)")


async def seed_subjects(store: DocumentStore, data_dir: Path) -> None:
    subjects = read_json(data_dir / "mata_kuliah.json")
    if isinstance(subjects, list):
        subjects = {"mata_kuliah": subjects}
    await store.set(Collections.SUBJECTS, Collections.SUBJECTS_DOCUMENT, subjects)
    print(f"✅ Subjects uploaded ({len(subjects.get('mata_kuliah', []))} subjects)")


async def seed_lock_status(store: DocumentStore, data_dir: Path) -> None:
    status = read_json(data_dir / "lock_status.json")
    document = {
        "dosenStatus": SystemStatus(status.get("dosenStatus", SystemStatus.OPEN.value)).value,
        "panitiaStatus": SystemStatus(status.get("panitiaStatus", SystemStatus.OPEN.value)).value,
    }
    await store.set(Collections.SYSTEM, Collections.STATUS_DOCUMENT, document)
    print(f"✅ Lock status uploaded ({document['dosenStatus']}/{document['panitiaStatus']})")


async def seed_scores(store: DocumentStore, data_dir: Path) -> None:
    scores = read_json(data_dir / "scores.json")
    if isinstance(scores, dict):
        for document_id, entry in scores.items():
            await store.set(Collections.SUBJECT_SCORES, document_id, entry)
    else:
        for entry in scores:
            await store.add(Collections.SUBJECT_SCORES, entry)
    print(f"✅ Scores uploaded ({len(scores)} entries)")


async def seed_users(store: DocumentStore, data_dir: Path) -> None:
    path = data_dir / "users.json"
    if not path.exists():
        print("ℹ️  No users.json, skipping user profiles")
        return

    users = read_json(path)
    for uid, profile in users.items():
        # Reject unknown roles before anything is written
        UserRole(profile["role"])
        await store.set(Collections.USERS, uid, profile)
    print(f"✅ User profiles uploaded ({len(users)} users)")


async def seed_all(data_dir: Path, store: DocumentStore = None) -> None:
    """
    Upload every seed file.

    Each file overwrites its target documents, so re-running is safe.
    """
    if store is None:
        if settings.document_store_backend == "sql":
            await create_tables()
        store = build_document_store()

    print("🌱 Starting store seeding...")
    await seed_roster(store, data_dir)
    await seed_subjects(store, data_dir)
    await seed_lock_status(store, data_dir)
    await seed_scores(store, data_dir)
    await seed_users(store, data_dir)
    print("\n🎉 Seeding completed successfully!")


if __name__ == "__main__":
    if len(sys.argv) != 2:
        print("Usage: python -m backend.seed_data DATA_DIR")
        sys.exit(1)
    asyncio.run(seed_all(Path(sys.argv[1])))
