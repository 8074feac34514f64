"""
Create a login account.

Usage: python scripts/create_manager.py <username> <password> [--role manager] [--name "Full Name"] [--email addr]
"""
import argparse
import sys
import os

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from fleetops.config import settings
from fleetops.db import Base, build_engine, build_session_factory
from fleetops.logging import setup_logging
from fleetops.services.seed import create_user


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Create a fleet ops login account")
    parser.add_argument("username")
    parser.add_argument("password")
    parser.add_argument("--role", default="manager")
    parser.add_argument("--name", default="")
    parser.add_argument("--email", default="")
    args = parser.parse_args(argv)

    setup_logging()
    if settings.database_url.startswith("sqlite:///./"):
        os.makedirs("var", exist_ok=True)
    engine = build_engine(settings.database_url)
    Base.metadata.create_all(bind=engine)
    db = build_session_factory(engine)()
    try:
        user = create_user(db, args.username, args.password, args.role, name=args.name, email=args.email)
    except ValueError as e:
        print(f"ERROR: {e}")
        return 1
    finally:
        db.close()
    print(f"Created {user.role} '{user.username}' with id {user.id}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
