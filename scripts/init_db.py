"""
Local development bootstrap: create tables (without Alembic) and seed demo customers.

Usage:
  python scripts/init_db.py            # uses DATABASE_URL or sqlite:///crm.db
"""

import sys
from pathlib import Path

# Ensure repo root is on sys.path when running as a script.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.crm import create_app  # noqa: E402
from app.crm.db import session_scope  # noqa: E402
from app.crm.lifecycle import DemoCustomerSeeder  # noqa: E402
from app.crm.models import Base  # noqa: E402
from app.crm.modules.customers.service import count_customers  # noqa: E402


def init_db() -> int:
    """
    Create missing tables and seed demo customers (idempotent).
    Returns the number of customers afterwards.
    """
    app = create_app()
    Base.metadata.create_all(bind=app.extensions["sqlalchemy_engine"])

    seeder = DemoCustomerSeeder(app)
    seeder.start()
    seeder.stop()

    with session_scope(app) as s:
        return count_customers(s)


def main() -> None:
    total = init_db()
    print("Initialized database.")
    print(f"Customers: {total}")


if __name__ == "__main__":
    main()
