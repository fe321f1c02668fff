import argparse
import logging
import sys

from . import config
from . import pipeline
from .categories import VALID_CATEGORIES

LOGGER = logging.getLogger("konnect.cli")


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="konnect",
        description="Build the Kosher Konnect map datasets (Overpass fetch, merge, heatmaps, overlays)",
    )
    ap.add_argument(
        "--data-dir",
        default=config.DATA_DIR,
        help=f"Directory holding the JSON artifacts (default: {config.DATA_DIR}, env KK_DATA_DIR)",
    )
    ap.add_argument(
        "--log-level",
        default="INFO",
        help="Logging level (DEBUG, INFO, WARNING, ...).",
    )
    sub = ap.add_subparsers(dest="command", required=True)

    fetch = sub.add_parser("fetch", help="Fetch all categories nationwide into osm-locations.json")
    fetch.add_argument(
        "--categories",
        nargs="+",
        default=list(VALID_CATEGORIES),
        choices=list(VALID_CATEGORIES),
        help="Categories to fetch (default: all).",
    )
    fetch.add_argument("--delay", type=float, default=config.REQUEST_DELAY_S, help="Seconds between requests.")
    fetch.add_argument("--cache-dir", default=None, help="Cache raw Overpass responses here.")

    regions = sub.add_parser("fetch-regions", help="Refetch categories region by region and replace them")
    regions.add_argument(
        "--categories",
        nargs="+",
        default=["restaurants", "chabad"],
        choices=list(VALID_CATEGORIES),
    )
    regions.add_argument("--delay", type=float, default=config.REQUEST_DELAY_S)
    regions.add_argument("--cache-dir", default=None)

    metros = sub.add_parser("fetch-metros", help="Kosher sweep per metro area; append new features")
    metros.add_argument("--delay", type=float, default=config.METRO_DELAY_S)
    metros.add_argument("--cache-dir", default=None)

    restaurants = sub.add_parser("fetch-restaurants", help="Nationwide kosher food sweep; append new restaurants")
    restaurants.add_argument("--cache-dir", default=None)

    merge = sub.add_parser("merge", help="Merge OSM + curated data and build heatmap points")
    merge.add_argument("--grid-size", type=float, default=config.GRID_SIZE, help="Grid cell size in degrees.")
    merge.add_argument("--h3-res", type=int, default=None, help="Aggregate by H3 cell at this resolution instead.")
    merge.add_argument("--match-names", action="store_true", help="Also collapse same-named neighbours.")

    sub.add_parser("build", help="Validate detailed locations and write locations-combined.json")

    surnames = sub.add_parser("surnames", help="Parse the census surname CSV")
    surnames.add_argument("--csv", default=None, help="Path to jewish_surnames.csv (default: <data-dir>/census/).")

    sub.add_parser("surname-heatmap", help="Build surname distribution heatmaps")
    sub.add_parser("population", help="Build population density points")
    return ap


def run_cli(args: argparse.Namespace) -> int:
    data_dir = args.data_dir
    try:
        if args.command == "fetch":
            pipeline.run_fetch(data_dir, args.categories, delay_s=args.delay, cache_dir=args.cache_dir)
        elif args.command == "fetch-regions":
            pipeline.run_fetch_regions(data_dir, args.categories, delay_s=args.delay, cache_dir=args.cache_dir)
        elif args.command == "fetch-metros":
            pipeline.run_fetch_metros(data_dir, delay_s=args.delay, cache_dir=args.cache_dir)
        elif args.command == "fetch-restaurants":
            pipeline.run_fetch_restaurants(data_dir, cache_dir=args.cache_dir)
        elif args.command == "merge":
            pipeline.run_merge(data_dir, grid_size=args.grid_size, h3_res=args.h3_res, match_names=args.match_names)
        elif args.command == "build":
            pipeline.run_build(data_dir)
        elif args.command == "surnames":
            pipeline.run_surnames(data_dir, csv_path=args.csv)
        elif args.command == "surname-heatmap":
            pipeline.run_surname_heatmap(data_dir)
        elif args.command == "population":
            pipeline.run_population(data_dir)
    except FileNotFoundError as e:
        LOGGER.error("[error] %s", e)
        return 1
    except KeyboardInterrupt:
        LOGGER.warning("[cli] Interrupted.")
        return 130  # 128 + SIGINT
    except Exception as e:
        LOGGER.exception("[cli] Fatal error: %s", e)
        return 2
    LOGGER.info("Done!")
    return 0


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.INFO),
        format="%(message)s",
    )
    return run_cli(args)


if __name__ == "__main__":
    sys.exit(main())
