"""
Startup tasks run once per process by the entry point (see app/wsgi.py, scripts/init_db.py).
"""

from __future__ import annotations

import logging

from flask import Flask

from app.crm.db import session_scope
from app.crm.modules.customers.models import Address
from app.crm.modules.customers.service import create_customer, find_all_customers
from app.crm.pagination import PageRequest

logger = logging.getLogger(__name__)

DEMO_CUSTOMERS: tuple[tuple[str, Address], ...] = (
    ("Apple", Address("Apple Street", "1", "12345", "Silicon Valley")),
    ("Bayer AG", Address("Kaiser-Wilhelm-Allee", "1", "51373", "Leverkusen")),
    ("Tesa Hamburg", Address("Heykenaukamp", "10", "21147", "Hamburg")),
    ("NovaTec Consulting GmbH", Address("Dieselstrasse", "18/1", "70771", "Leinfelden-Echterdingen")),
    ("Daimler AG (Standort Möhringen)", Address("Epplestraße", "225", "70567", "Stuttgart")),
    ("Continental AG", Address("Vahrenwalder Str.", "9", "30165", "Hannover")),
)


class DemoCustomerSeeder:
    """
    Creates the demo customers when the customer store is empty.

    Two states, stopped and running. start() performs the seeding check once;
    stop() only clears the flag. Seeding is best-effort across processes: two
    processes starting against the same empty store may both seed.
    """

    def __init__(self, app: Flask) -> None:
        self.app = app
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    def start(self) -> None:
        if self._running:
            return
        self._running = True
        try:
            with self.app.app_context():
                self._create_customers()
        except Exception:
            self._running = False
            logger.exception("Demo customer seeding failed")
            raise

    def stop(self) -> None:
        self._running = False

    def _create_customers(self) -> None:
        with session_scope(self.app) as s:
            first_page = find_all_customers(s, PageRequest(page=0, size=1))
            if first_page.has_content:
                logger.info("Customers present; skipping demo customers")
                return

            logger.info("Creating Demo Customers")
            for name, address in DEMO_CUSTOMERS:
                create_customer(s, name=name, address=address)
        logger.info("Created %d demo customers", len(DEMO_CUSTOMERS))
