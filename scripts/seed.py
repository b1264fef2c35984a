"""
SafeCart - Store Seeder
========================
Seeds the demo catalog and discount codes into DATABASE_URL.

Usage:
    python scripts/seed.py          # Seed missing fixtures
    python scripts/seed.py --reset  # Drop all data and reseed

An in-memory DATABASE_URL (the default) is refused: the seeded data
would vanish when this script exits. Point DATABASE_URL at a file or a
server first, or use main.bootstrap(seed=True) inside the process.
"""

import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config.database import build_engine, build_session_factory, drop_db, init_db, is_memory_url
from config.fixtures import seed as seed_fixtures
from config.settings import DATABASE_URL


def _refuse_memory(url: str) -> bool:
    if not is_memory_url(url):
        return False
    print(f"  ! DATABASE_URL={url!r} is an in-memory database; nothing would persist.")
    print("  ! Set DATABASE_URL to a file (e.g. sqlite:///./safecart.db) and run again.")
    return True


def seed(url: str = DATABASE_URL) -> bool:
    if _refuse_memory(url):
        return False

    engine = build_engine(url)
    init_db(engine)
    db = build_session_factory(engine)()
    try:
        print("=" * 50)
        print("  SafeCart - Seeder")
        print("=" * 50)
        created = seed_fixtures(db)
        db.commit()
        print(f"  + products:  {created['products']}")
        print(f"  + discounts: {created['discounts']}")
    except Exception as e:
        db.rollback()
        print(f"  ! seeding failed: {e}")
        raise
    finally:
        db.close()
        engine.dispose()
    return True


def reset_and_seed(url: str = DATABASE_URL) -> bool:
    """Drop all tables and recreate + seed."""
    if _refuse_memory(url):
        return False

    engine = build_engine(url)
    drop_db(engine)
    engine.dispose()
    print("All tables dropped")
    return seed(url)


if __name__ == "__main__":
    if "--reset" in sys.argv:
        confirm = input("This will DELETE ALL DATA. Type 'yes' to confirm: ")
        if confirm.strip().lower() == "yes":
            ok = reset_and_seed()
        else:
            print("Aborted.")
            ok = True
    else:
        ok = seed()
    sys.exit(0 if ok else 1)
