# main.py

import sys

from src import config
from src.application.projection_maintainer import ProjectionMaintainer
from src.application.search_service import ProviderSearchService
from src.domain.criteria import SearchCriteria
from src.domain.errors import SearchEngineError, StorageUnavailableError
from src.domain.geo import GeoPoint
from src.infrastructure.provider_loader import ProviderLoader
from src.infrastructure.store_factory import build_provider_store
from src.interface.cli import (
    display_welcome_banner,
    display_store_status,
    prompt_for_search,
    display_results,
    display_error,
    ask_continue,
)


PAGE_SIZE = 10


def main() -> None:
    display_welcome_banner()

    # ── 1. Initialize infrastructure ─────────────────────────────────────────
    try:
        store = build_provider_store()
    except StorageUnavailableError as error:
        display_error(error.message)
        sys.exit(1)

    maintainer = ProjectionMaintainer(store)
    search_service = ProviderSearchService(store)

    # ── 2. Seed an empty store ───────────────────────────────────────────────
    if not store.is_ready():
        _seed_store(maintainer)
    else:
        print("[Main] Store already populated — skipping seed. ✓")

    display_store_status(store.count(), store.get_tier_stats())

    # ── 3. Interactive search loop ────────────────────────────────────────────
    while True:
        try:
            inputs = prompt_for_search()
            criteria = SearchCriteria.build(
                origin=GeoPoint(inputs["latitude"], inputs["longitude"]),
                radius_km=inputs["radius_km"],
                service_ids=inputs["service_ids"],
                min_rating=inputs["min_rating"],
                tiers=inputs["tiers"],
                page=inputs["page"],
                page_size=PAGE_SIZE,
                term=inputs["term"],
            )
            display_results(criteria, search_service.search(criteria))
        except SearchEngineError as error:
            display_error(f"{error.kind}: {error.message}")
        except ValueError as error:
            display_error(str(error))

        if not ask_continue():
            break


def _seed_store(maintainer: ProjectionMaintainer) -> None:
    """Index every provider in the seed file."""
    print(f"[Main] Empty store — seeding from '{config.SEED_DATA_FILE}'...")
    loader = ProviderLoader()

    try:
        records = loader.load_file(config.SEED_DATA_FILE)
    except (FileNotFoundError, ValueError) as error:
        display_error(str(error))
        sys.exit(1)

    if not records:
        display_error(f"No valid providers found in '{config.SEED_DATA_FILE}'.")
        sys.exit(1)

    for record in records:
        maintainer.index_provider(record)


if __name__ == "__main__":
    main()
