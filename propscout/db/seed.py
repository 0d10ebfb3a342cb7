"""Seed the listings store from a CSV export, passing every row through the normalizer."""

from __future__ import annotations

import argparse
from typing import Optional

import pandas as pd
from dotenv import load_dotenv

from ..services.normalizer import normalize_many
from ..utils.logging import configure_logging, get_logger
from .mappers import listing_to_row
from .repo import Repo

LOGGER = get_logger("db.seed")


def load_dataframe(path: str) -> pd.DataFrame:
    return pd.read_csv(path, dtype={"id": str})


def seed(path: str, source: str = "database", repo: Optional[Repo] = None) -> int:
    repo = repo or Repo()
    frame = load_dataframe(path)
    records = frame.astype(object).where(pd.notnull(frame), None).to_dict(orient="records")
    LOGGER.info("seed_loaded path=%s rows=%d source=%s", path, len(records), source)
    listings = normalize_many(records, source)
    written = repo.upsert_listings(listing_to_row(listing) for listing in listings)
    LOGGER.info("seed_complete mode=%s written=%d skipped=%d", repo.mode, written, len(records) - len(listings))
    return written


def main(argv: Optional[list] = None) -> None:
    load_dotenv()
    configure_logging()
    parser = argparse.ArgumentParser(description="Seed property_listings from a CSV file")
    parser.add_argument("path")
    parser.add_argument("--source", default="database", help="adapter to use for the rows (zoopla, patma, ...)")
    parser.add_argument("--mode", choices=["csv", "supabase"], default=None)
    args = parser.parse_args(argv)
    seed(args.path, source=args.source, repo=Repo(mode=args.mode))


if __name__ == "__main__":
    main()
