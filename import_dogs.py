#!/usr/bin/env python3
"""
Import dogs from a CSV file through the API.
Handles CSV structure: name, sex, owner, breed (header row required)
Sex accepts "male"/"female" or the French labels "Mâle"/"Femelle".
Owners are matched by exact name and created when missing.
"""

import csv
import os
import sys
from pathlib import Path
from typing import Dict, List, Optional

import requests

API_BASE = os.environ.get("API_BASE", "http://localhost:3000")
ADMIN_KEY = os.environ.get("ADMIN_API_KEY", "")

SEX_ALIASES = {
    "male": "male",
    "mâle": "male",
    "m": "male",
    "female": "female",
    "femelle": "female",
    "f": "female",
}


def parse_dogs_csv(csv_path: str) -> List[Dict[str, Optional[str]]]:
    """Parse the CSV into dog dicts, skipping rows without a name or owner."""
    dogs = []

    with open(csv_path, 'r', encoding='utf-8') as f:
        reader = csv.DictReader(f)

        for row_num, row in enumerate(reader, start=2):
            name = (row.get('name') or '').strip()
            owner = (row.get('owner') or '').strip()
            if not name or not owner:
                print(f"⚠️  Skipping row {row_num}: missing name or owner")
                continue

            sex_raw = (row.get('sex') or '').strip().lower()
            breed = (row.get('breed') or '').strip()
            dogs.append({
                'name': name,
                'sex': SEX_ALIASES.get(sex_raw),
                'owner': owner,
                'breed': breed or None,
            })

    return dogs


def _headers() -> Dict[str, str]:
    return {"X-Admin-Key": ADMIN_KEY}


def find_or_create_owner(name: str, cache: Dict[str, int]) -> Optional[int]:
    """Return the owner's ID, creating the owner if needed."""
    if name in cache:
        return cache[name]

    try:
        response = requests.get(f"{API_BASE}/owners", params={"search": name}, headers=_headers(), timeout=10)
        response.raise_for_status()
        for owner in response.json():
            if owner["name"] == name:
                cache[name] = owner["id"]
                return owner["id"]

        response = requests.post(f"{API_BASE}/owners", json={"name": name}, headers=_headers(), timeout=10)
        response.raise_for_status()
        cache[name] = response.json()["id"]
        return cache[name]
    except requests.RequestException as e:
        print(f"❌ Failed to resolve owner {name}: {e}")
        return None


def create_dog(dog: Dict[str, Optional[str]], owner_id: int) -> Optional[int]:
    """Create a dog and return its ID."""
    payload = {
        "name": dog["name"],
        "sex": dog["sex"],
        "breed": dog["breed"],
        "owner_id": owner_id,
    }
    try:
        response = requests.post(f"{API_BASE}/dogs", json=payload, headers=_headers(), timeout=10)
        response.raise_for_status()
        return response.json().get("id")
    except requests.RequestException as e:
        print(f"❌ Failed to create dog {dog['name']}: {e}")
        return None


def main(csv_file: str = "dogs.csv") -> bool:
    csv_path = Path(csv_file)

    if not csv_path.exists():
        print(f"❌ File not found: {csv_path}")
        return False

    if not ADMIN_KEY:
        print("❌ ADMIN_API_KEY is not set")
        return False

    dogs = parse_dogs_csv(str(csv_path))
    print(f"✅ Parsed {len(dogs)} dogs from {csv_path}")

    try:
        response = requests.get(f"{API_BASE}/health", timeout=5)
        response.raise_for_status()
    except requests.RequestException as e:
        print(f"❌ API not reachable at {API_BASE}: {e}")
        print("   Start the API with: uvicorn main:app --reload")
        return False

    owners: Dict[str, int] = {}
    created = 0
    failed = 0

    for dog in dogs:
        owner_id = find_or_create_owner(dog["owner"], owners)
        if owner_id is None or create_dog(dog, owner_id) is None:
            failed += 1
            continue
        created += 1
        print(f"  🐕 {dog['name']} ({dog['owner']})")

    print()
    print(f"Created: {created}")
    print(f"Failed:  {failed}")
    return failed == 0


if __name__ == '__main__':
    try:
        success = main(*sys.argv[1:2])
        sys.exit(0 if success else 1)
    except Exception as e:
        print(f"❌ Fatal error: {e}")
        sys.exit(1)
