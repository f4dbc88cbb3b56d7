"""
WSGI entry point (gunicorn app.wsgi:app).

Runs the one-shot startup tasks before serving. With `--preload` this happens once
in the gunicorn master, before workers fork.
"""

import atexit
import logging
import os

from app.crm import create_app
from app.crm.lifecycle import DemoCustomerSeeder

logging.basicConfig(
    level=(os.environ.get("LOG_LEVEL") or "INFO").strip().upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)

app = create_app()

if app.config["SEED_DEMO_CUSTOMERS"]:
    seeder = DemoCustomerSeeder(app)
    seeder.start()
    atexit.register(seeder.stop)
