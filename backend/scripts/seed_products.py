#!/usr/bin/env python3
"""
Seed the catalog from a JSON file (scripts/catalogue.json by default).

Entries are objects with name, description, image, price and quantity; a
top-level {"items": [...]} wrapper is accepted too. Products whose name is
already in the catalog are skipped, so the script can be re-run.

Usage:
    python scripts/seed_products.py --file scripts/catalogue.json
"""
import argparse
import json
import logging
import os
import sys
from decimal import Decimal, InvalidOperation

# allow running from repo/scripts
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from ecom.db import SessionLocal, init_db
from ecom.logging_conf import setup_logging
from ecom.repositories.product_repo import ProductRepository

log = logging.getLogger("ecom.seed")

DEFAULT_SOURCE = os.path.join(os.path.dirname(__file__), "catalogue.json")


def _normalize_entry(entry):
    """Return a dict with keys: name, description, image, price, quantity"""
    name = entry.get("name") or entry.get("title") or ""
    try:
        price = Decimal(str(entry.get("price", 0)))
    except InvalidOperation:
        price = Decimal("0")
    try:
        quantity = int(entry.get("quantity", entry.get("stock", 0)) or 0)
    except (TypeError, ValueError):
        quantity = 0
    return {
        "name": name,
        "description": entry.get("description") or "",
        "image": entry.get("image"),
        "price": max(price, Decimal("0")),
        "quantity": max(quantity, 0),
    }


def load_entries(path: str):
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, dict):
        data = data.get("items", [])
    return [_normalize_entry(e) for e in data if isinstance(e, dict)]


def seed_from_file(path: str) -> int:
    entries = load_entries(path)
    db = SessionLocal()
    repo = ProductRepository(db)
    created = 0
    try:
        for entry in entries:
            if not entry["name"] or repo.get_by_name(entry["name"]):
                continue
            repo.create(**entry)
            created += 1
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
    log.info("Seeded products: %d", created)
    return created


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    parser.add_argument("--file", "-f", default=DEFAULT_SOURCE, help="Path to product json")
    parser.add_argument("--reset", action="store_true", help="drop and recreate tables first")
    args = parser.parse_args()
    setup_logging()
    if not os.path.exists(args.file):
        log.error("File not found: %s", args.file)
        sys.exit(1)
    init_db(reset=args.reset)
    seed_from_file(args.file)
