#!/usr/bin/env python3
"""
matrixstore Quickstart — account, token and matrices in one script.

Creates an account → logs in → saves matrices (allocated and explicit ids)
→ re-saves one → lists ids → reads rows back.
Run with: python examples/quickstart.py

Requires: pip install httpx
Backend must be running: http://localhost:8000
"""

import sys

from _common import create_client


def main():
    client = create_client()

    # ── Unauthenticated request is refused ───────────────────────
    print("\n1. Calling the matrix API without a token...")
    resp = client.get("/get-matrix-list", headers={"Authorization": ""})
    assert resp.status_code == 401, f"Expected 401, got {resp.status_code}"
    print(f"   {resp.status_code}: {resp.json()['error']}")

    # ── Save with an allocated id ────────────────────────────────
    print("\n2. Saving a matrix without an id...")
    resp = client.post("/save-matrix", json={"matrixData": [
        {"columnName": "Age", "transformation": "int"},
        {"columnName": "Name", "transformation": "str.strip"},
    ]})
    assert resp.status_code == 201, f"Failed: {resp.text}"
    first = resp.json()["matrixId"]
    print(f"   Allocated matrix {first}")

    # ── Save under an explicit id ────────────────────────────────
    print("\n3. Saving under matrix 4...")
    resp = client.post("/save-matrix", json={
        "matrixId": 4,
        "matrixData": [{"columnName": "Zip", "transformation": "str"}],
    })
    assert resp.status_code == 201, f"Failed: {resp.text}"
    print(f"   Saved matrix {resp.json()['matrixId']}")

    # ── Next allocation skips past the highest id ────────────────
    print("\n4. Saving another matrix without an id...")
    resp = client.post("/save-matrix", json={"matrixData": [
        {"columnName": "Score", "transformation": "float"},
    ]})
    assert resp.status_code == 201, f"Failed: {resp.text}"
    print(f"   Allocated matrix {resp.json()['matrixId']} (highest id + 1)")

    # ── Re-save appends rows ─────────────────────────────────────
    print(f"\n5. Re-saving matrix {first}...")
    resp = client.post("/save-matrix", json={
        "matrixId": first,
        "matrixData": [{"columnName": "Email", "transformation": "str.lower"}],
    })
    assert resp.status_code == 201, f"Failed: {resp.text}"

    # ── List + read ──────────────────────────────────────────────
    print("\n6. Listing matrices...")
    ids = client.get("/get-matrix-list").json()["matrixIds"]
    print(f"   Matrix ids: {ids}")

    print(f"\n7. Reading matrix {first}...")
    rows = client.get(f"/get-matrix/{first}").json()["matrixData"]
    for row in rows:
        print(f"   {row['columnName']:<10} {row['transformation']}")

    print("\nDone.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
