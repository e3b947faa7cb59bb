#!/usr/bin/env python
"""
scripts/seed_catalog.py
────────────────────────────────────────────────────────────
One-shot bootstrap script for LocalRadar:

• Creates sample documents in the five catalog collections
  (jobs, items, events, shops, services)
• Stores a geohash next to the coordinates of geo records

Run:
    python scripts/seed_catalog.py --project YOUR_GCP_PROJECT \
                                   --sa      path/to/service-account.json
"""

import argparse
import os
import sys
from typing import Dict, List

import pygeohash as pgh
from google.cloud import firestore

from localradar_ai.semantic_db.models import Collection

# ──────────────────────────────────────────────────────────
#  Utils
# ──────────────────────────────────────────────────────────


def banner(msg: str) -> None:
    print(f"\n\033[96m⚙️  {msg}\033[0m")


def green(msg: str) -> None:
    print(f"\033[92m✅ {msg}\033[0m")


def red(msg: str) -> None:
    print(f"\033[91m❌ {msg}\033[0m", file=sys.stderr)


# ──────────────────────────────────────────────────────────
#  Sample catalog
# ──────────────────────────────────────────────────────────

SAMPLE_CATALOG: Dict[Collection, List[Dict]] = {
    Collection.JOBS: [
        {"id": "job_barista", "attributes": {
            "type": "job", "title": "Barista", "employment": "part-time",
            "latitude": 13.0358, "longitude": 77.5970}},
        {"id": "job_delivery", "attributes": {
            "type": "job", "title": "Delivery rider", "vehicle": "two-wheeler",
            "latitude": 13.1986, "longitude": 77.7066}},
    ],
    Collection.ITEMS: [
        {"id": "item_red_jacket", "attributes": {
            "type": "item", "name": "jacket", "color": "red", "size": "M", "material": "denim",
            "condition": "new"}},
        {"id": "item_blue_backpack", "attributes": {
            "type": "item", "name": "backpack", "color": "blue", "material": "nylon",
            "condition": "used"}},
    ],
    Collection.EVENTS: [
        {"id": "event_jazz", "attributes": {
            "type": "event", "name": "Jazz night", "genre": "music", "day": "Saturday",
            "latitude": 13.0410, "longitude": 77.5400}},
    ],
    Collection.SHOPS: [
        {"id": "shop_bakery", "attributes": {
            "type": "shop", "name": "Corner bakery", "sells": "bread, cakes",
            "latitude": 13.0450, "longitude": 77.5300}},
        {"id": "shop_hardware", "attributes": {
            "type": "shop", "name": "City hardware", "sells": "tools, paint",
            "latitude": 12.9716, "longitude": 77.5946}},
    ],
    Collection.SERVICES: [
        {"id": "service_plumber", "attributes": {
            "type": "service", "name": "Plumbing repair", "availability": "24x7"}},
    ],
}


# ──────────────────────────────────────────────────────────
#  Firestore Seeder Class
# ──────────────────────────────────────────────────────────


class CatalogSeeder:
    """One-shot bootstrapper for the LocalRadar catalog"""

    # ── constructor ───────────────────────────────────────
    def __init__(self, project_id: str, credentials: str | None):
        self.project_id = project_id
        if credentials:
            os.environ["GOOGLE_APPLICATION_CREDENTIALS"] = credentials

        self.db = firestore.Client(project=project_id)

    # ── main entrypoint ───────────────────────────────────
    def run(self, collections: List[Collection]) -> int:
        banner("Seeding LocalRadar catalog")
        print(f"📋 Project ID: {self.project_id}")

        written = 0
        for collection in collections:
            written += self.seed_collection(collection, SAMPLE_CATALOG[collection])

        banner(f"🎉 Done, {written} documents written")
        return written

    def seed_collection(self, collection: Collection, records: List[Dict]) -> int:
        count = 0
        for record in records:
            doc = {"attributes": dict(record["attributes"]), "created_at": firestore.SERVER_TIMESTAMP}
            attrs = doc["attributes"]
            if collection.is_geo and "latitude" in attrs and "longitude" in attrs:
                doc["geohash"] = pgh.encode(attrs["latitude"], attrs["longitude"], precision=7)
            try:
                self.db.collection(collection.value).document(record["id"]).set(doc)
                count += 1
            except Exception as e:
                red(f"{collection.value}/{record['id']} failed: {e}")
        green(f"{collection.value} → {count} sample docs written")
        return count


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed the LocalRadar Firestore catalog")
    parser.add_argument("--project", required=True, help="GCP project id")
    parser.add_argument("--sa", help="path to a service-account JSON key")
    parser.add_argument(
        "--only", nargs="*", choices=[c.value for c in Collection],
        help="seed only these collections",
    )
    args = parser.parse_args()

    collections = [Collection(name) for name in args.only] if args.only else list(Collection)
    try:
        CatalogSeeder(args.project, args.sa).run(collections)
    except Exception as e:
        red(f"Seeding failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
