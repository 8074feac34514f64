"""
Seed the demo manager account (systemadmin / password) and sample records.
Safe to re-run: does nothing once the manager account exists.
"""
import sys
import os

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from fleetops.config import settings
from fleetops.db import Base, build_engine, build_session_factory
from fleetops.logging import setup_logging
from fleetops.services.seed import seed_demo_data


def main() -> int:
    setup_logging()
    if settings.database_url.startswith("sqlite:///./"):
        os.makedirs("var", exist_ok=True)
    engine = build_engine(settings.database_url)
    Base.metadata.create_all(bind=engine)
    db = build_session_factory(engine)()
    try:
        created = seed_demo_data(db)
    finally:
        db.close()
    print("Demo data created" if created else "Demo data already present, nothing to do")
    return 0


if __name__ == "__main__":
    sys.exit(main())
