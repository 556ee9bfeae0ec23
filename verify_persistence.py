import asyncio
import time
import subprocess
import httpx
import sys
import os
import signal

from backend.app.db.document_store import build_document_store
from backend.app.db.session import create_tables
from backend.app.models.enums import Collections

BASE_URL = "http://127.0.0.1:8000"
API_PREFIX = "/v1"

ADMIN_UID = "persist-admin"
STUDENT = {"name": "Persist Check", "class": "ZZ", "group": "1"}
STUDENT_ID = "ZZ-1-Persist Check"


def wait_for_server(retries=10, delay=2):
    url = f"{BASE_URL}/health"
    print(f"Waiting for server at {url}...")
    for i in range(retries):
        try:
            resp = httpx.get(url)
            if resp.status_code == 200:
                print("✅ Server is up!")
                return True
        except httpx.ConnectError:
            pass
        time.sleep(delay)
    print("❌ Server failed to start.")
    return False


def start_server(echo=False):
    env = {**os.environ, "DOCUMENT_STORE_BACKEND": "sql", "DEBUG": "True"}
    if echo:
        env["DB_ECHO"] = "True"  # Enable echo to see SQL
    return subprocess.Popen(
        [sys.executable, "-m", "uvicorn", "backend.app.main:app", "--host", "127.0.0.1", "--port", "8000"],
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        env=env,
    )


def stop_server(proc):
    proc.send_signal(signal.SIGTERM)
    proc.wait()


def admin_headers():
    resp = httpx.post(f"{BASE_URL}{API_PREFIX}/auth/dev-token", json={"uid": ADMIN_UID})
    if resp.status_code != 200:
        raise Exception(f"Dev token failed: {resp.status_code} {resp.text}")
    return {"Authorization": f"Bearer {resp.json()['access_token']}"}


async def ensure_admin_profile():
    await create_tables()
    store = build_document_store()
    await store.set(Collections.USERS, ADMIN_UID, {
        "email": "persist@camp.id", "name": "Persistence Check", "role": "admin"
    })


def run_verification():
    print("\n--- [Step 0] Writing Admin Profile ---")
    asyncio.run(ensure_admin_profile())

    # 1. Start Server (First Run)
    print("\n--- [Step 1] Starting Server (Initial) ---")
    proc = start_server(echo=True)

    try:
        if not wait_for_server():
            server_logs = proc.communicate(timeout=2)
            print("Server Stdout:", server_logs[0].decode())
            print("Server Stderr:", server_logs[1].decode())
            raise Exception("Server start failed")

        # 2. Add Student
        print("\n--- [Step 2] Adding Student (Persistence Test) ---")
        resp = httpx.post(f"{BASE_URL}{API_PREFIX}/admin/students", json=STUDENT, headers=admin_headers())

        if resp.status_code == 409:
            print("⚠️ Student already exists (persistence working from previous run?)")
        elif resp.status_code == 201:
            print("✅ Student Added Successfully")
            print(resp.json())
        else:
            print(f"❌ Add Student Failed: {resp.status_code} {resp.text}")
            raise Exception("Add student failed")

    finally:
        print("\n--- [Step 3] Stopping Server ---")
        stop_server(proc)

    time.sleep(2)  # Wait for port release

    # 3. Restart Server
    print("\n--- [Step 4] Restarting Server (Verification) ---")
    proc2 = start_server()

    try:
        if not wait_for_server():
            raise Exception("Server restart failed")

        # 4. Read Roster
        print("\n--- [Step 5] Reading Roster (Post-Restart) ---")
        headers = admin_headers()
        resp = httpx.get(f"{BASE_URL}{API_PREFIX}/roster", headers=headers)
        ids = [student["id"] for student in resp.json().get("students", [])]

        if STUDENT_ID in ids:
            print("✅ Student Found (Roster Persisted!)")
        else:
            print(f"❌ Student Missing (Persistence Issue?): {resp.status_code} {resp.text}")
            raise Exception("Student missing after restart")

        # 5. Clean Up
        print("\n--- [Step 6] Removing Test Student ---")
        resp = httpx.delete(f"{BASE_URL}{API_PREFIX}/admin/students/{STUDENT_ID}", headers=headers)
        if resp.status_code == 200:
            print("✅ Test Student Removed")
        else:
            print(f"❌ Cleanup Failed: {resp.status_code}")

    finally:
        print("\n--- [Step 7] Stopping Server ---")
        stop_server(proc2)


if __name__ == "__main__":
    run_verification()
