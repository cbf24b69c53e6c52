from __future__ import annotations

import argparse

from weeat.core.config import settings
from weeat.core.logging import configure_logging
from weeat.db.postgres import PostgresMenuRepository
from weeat.search.places import GooglePlacesClient
from weeat.search.service import populate_restaurants


def main() -> None:
    parser = argparse.ArgumentParser(description="Store nearby restaurants from Google Places.")
    parser.add_argument("--lat", type=float, required=True)
    parser.add_argument("--lng", type=float, required=True)
    parser.add_argument("--radius", type=float, default=5000, help="search radius in metres")
    parser.add_argument("keywords", nargs="+")
    args = parser.parse_args()

    configure_logging(settings.log_level)
    populate_restaurants(
        GooglePlacesClient(),
        PostgresMenuRepository(),
        args.lat,
        args.lng,
        args.radius,
        args.keywords,
    )


if __name__ == "__main__":
    main()
