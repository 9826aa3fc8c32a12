# app/db/init_db.py
from __future__ import annotations

import argparse
import logging

from sqlalchemy.orm import Session

from app.core.permissions import ALL_PO_PERMS
from app.db.base import Base
from app.db.session import SessionLocal, engine
from app.models.user import Permission

logger = logging.getLogger(__name__)


def seed_permissions(db: Session) -> None:
    """
    Seed ONLY missing permission codes; safe to run multiple times.
    """
    existing = {code for (code, ) in db.query(Permission.code).all()}
    for code in ALL_PO_PERMS:
        if code in existing:
            continue
        module, _, action = code.partition(".")
        db.add(Permission(code=code, label=f"{module.replace('_', ' ').title()}: {action}"))
    db.flush()


def init_db(bind=None) -> None:
    Base.metadata.create_all(bind=bind or engine)


def main() -> None:
    parser = argparse.ArgumentParser(description="Create procurement tables and seed permissions")
    parser.add_argument("--skip-seed", action="store_true")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO)
    init_db()
    logger.info("Tables created")

    if args.skip_seed:
        return

    db = SessionLocal()
    try:
        with db.begin():
            seed_permissions(db)
        logger.info("Permissions seeded")
    finally:
        db.close()


if __name__ == "__main__":
    main()
