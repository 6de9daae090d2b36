"""Seed the webhooks table with synthetic Stripe deliveries."""

import argparse
import logging
import random

from sqlalchemy.orm import Session, sessionmaker

from hooklab.config import get_settings
from hooklab.database import init_db, make_engine
from hooklab.fixtures import FixtureGenerator
from hooklab.repository import insert_delivery_records

logger = logging.getLogger(__name__)

DEFAULT_COUNT = 80


def seed_webhooks(
    db: Session,
    count: int = DEFAULT_COUNT,
    generator: FixtureGenerator | None = None,
) -> list[int]:
    """Generate ``count`` delivery records and insert them."""
    generator = generator or FixtureGenerator(
        signing_secret=get_settings().webhook_signing_secret
    )
    records = generator.generate_batch(count)
    ids = insert_delivery_records(db, records)
    logger.info("Seeded %d webhook(s).", len(ids))
    return ids


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="hooklab-seed",
        description="Insert synthetic Stripe webhook deliveries",
    )
    parser.add_argument("--count", type=int, default=DEFAULT_COUNT, help="Records to insert (default: 80)")
    parser.add_argument("--seed", type=int, default=None, help="Seed for reproducible fixtures")
    parser.add_argument("--database-url", default=None, help="Override DATABASE_URL")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    if args.count < 0:
        parser.error("--count must be non-negative")

    settings = get_settings()
    engine = make_engine(args.database_url or settings.database_url)
    init_db(engine)
    SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)

    generator = FixtureGenerator(
        rng=random.Random(args.seed),
        signing_secret=settings.webhook_signing_secret,
    )
    with SessionLocal() as db:
        seed_webhooks(db, count=args.count, generator=generator)
    engine.dispose()


if __name__ == "__main__":
    main()
