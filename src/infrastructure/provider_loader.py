# src/infrastructure/provider_loader.py

import json
from pathlib import Path
from typing import List

from src.domain.errors import ValidationError
from src.domain.geo import GeoPoint
from src.domain.models import SearchableProviderRecord


class ProviderLoader:
    """
    Loads provider snapshots from a JSON file into searchable records.

    Expected layout: a list of objects, or {"providers": [...]}, each with
    provider_id, name, latitude, longitude and optional tier, service_ids,
    average_rating, review_count, is_active, description, city, state.

    Invalid entries are skipped and reported; one bad row never blocks a seed.
    """

    def load_file(self, file_path: str) -> List[SearchableProviderRecord]:
        path = Path(file_path)
        if not path.exists():
            raise FileNotFoundError(f"Provider seed file not found: {file_path}")

        raw = json.loads(path.read_text(encoding="utf-8"))
        entries = raw.get("providers", []) if isinstance(raw, dict) else raw
        if not isinstance(entries, list):
            raise ValueError(f"Provider seed file '{path.name}' must hold a list.")

        records: List[SearchableProviderRecord] = []
        for position, entry in enumerate(entries, start=1):
            try:
                records.append(self.parse_entry(entry))
            except (ValidationError, KeyError, TypeError) as error:
                print(f"[ProviderLoader] ⚠ Skipping entry #{position} in {path.name}: {error}")

        print(f"[ProviderLoader] Loaded {len(records)} providers from {path.name}")
        return records

    @staticmethod
    def parse_entry(entry: dict) -> SearchableProviderRecord:
        return SearchableProviderRecord(
            provider_id       = str(entry["provider_id"]),
            display_name      = entry["name"],
            location          = GeoPoint(entry["latitude"], entry["longitude"]),
            subscription_tier = entry.get("tier", "free"),
            service_ids       = entry.get("service_ids", []),
            average_rating    = entry.get("average_rating"),
            review_count      = entry.get("review_count", 0),
            is_active         = entry.get("is_active", True),
            description       = entry.get("description"),
            city              = entry.get("city"),
            state             = entry.get("state"),
        )
