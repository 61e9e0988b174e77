"""
Replace every account with the users listed in a JSON file.

Run from backend/: python scripts/seed_users.py data/users.sample.json

The file holds a list of objects with username, email, password and
optional role / is_active. Passwords are hashed on insert.
"""

import json
import logging
import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from account_api.core.database import Base, SessionLocal, engine
from account_api.core.exceptions import APIError
from account_api.core.security import get_password_hasher
from account_api.repositories.user_repository import UserRepository

logger = logging.getLogger("seed_users")

DEFAULT_SEED_FILE = Path(__file__).resolve().parent.parent / "data" / "users.sample.json"


def load_records(path: Path) -> list:
    if not path.exists():
        raise FileNotFoundError(f"Seed file not found: {path}")
    records = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(records, list):
        raise ValueError("Seed file must contain a JSON list of users")
    return records


def seed(path: Path) -> int:
    records = load_records(path)
    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        repo = UserRepository(db, get_password_hasher())
        removed = repo.delete_all()
        created = repo.bulk_create(records)
        logger.info(f"Removed {removed} users, seeded {len(created)} users")
        return len(created)
    finally:
        db.close()


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")
    path = Path(sys.argv[1]) if len(sys.argv) > 1 else DEFAULT_SEED_FILE
    try:
        seed(path)
    except (FileNotFoundError, ValueError, KeyError, APIError) as exc:
        logger.error(f"Seeding failed: {exc}")
        sys.exit(1)


if __name__ == "__main__":
    main()
