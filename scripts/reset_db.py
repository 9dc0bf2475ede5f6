"""
Drop and recreate every table, then seed the system themes.

For local development only; all data is lost.
  python scripts/reset_db.py              # empty schema + system themes
  python scripts/reset_db.py --seed-demo  # plus a demo planner, wedding, admin and families
"""
import argparse
import os
import sys

# Project root
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from app.database import Base, SessionLocal, engine  # noqa: E402
from app import models  # noqa: F401,E402
from app.seed import DEMO_ADMIN_EMAIL, DEMO_PLANNER_EMAIL, seed_demo  # noqa: E402
from app.services.themes import seed_system_themes  # noqa: E402


def main():
    parser = argparse.ArgumentParser(description="Reset the database schema")
    parser.add_argument("--seed-demo", action="store_true", help="Create demo planner, wedding and families")
    args = parser.parse_args()

    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    print(f"Recreated {len(Base.metadata.tables)} tables.")

    db = SessionLocal()
    try:
        seed_system_themes(db)
        print("System themes seeded.")
        if args.seed_demo:
            wedding = seed_demo(db)
            print(f"Demo wedding {wedding.id} ({wedding.couple_names}) created.")
            print(f"  planner: {DEMO_PLANNER_EMAIL}")
            print(f"  wedding admin: {DEMO_ADMIN_EMAIL}")
            for family in wedding.families:
                print(f"  /rsvp/{family.magic_token}  {family.name}")
    finally:
        db.close()


if __name__ == "__main__":
    main()
