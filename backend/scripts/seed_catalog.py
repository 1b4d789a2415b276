#!/usr/bin/env python3
"""
Seed jewelry products, a gold price snapshot and demo addresses.

Products come from a JSON file (a list of objects) when --file is given,
otherwise from the small built-in catalogue below. Existing slugs are left
untouched so the script can be re-run.

Usage:
    python scripts/seed_catalog.py --gold-price 72.40 --user 1
    python scripts/seed_catalog.py --file catalogue.json
"""
import argparse
import json
import os
import sys
from decimal import Decimal

# allow running from repo/scripts
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from storefront.db import SessionLocal, init_db
from storefront.models.product import KARATS, Product
from storefront.repositories.address_repo import AddressRepository
from storefront.repositories.product_repo import ProductRepository
from storefront.services.pricing_service import PricingService

DEFAULT_CATALOGUE = [
    {"name": "Classic Band 18K", "slug": "classic-band-18k", "base_price": "120.00", "karat": "18K", "weight_grams": "4.20", "stock_quantity": 12},
    {"name": "Rope Chain 22K", "slug": "rope-chain-22k", "base_price": "180.00", "karat": "22K", "weight_grams": "9.50", "stock_quantity": 5},
    {"name": "Stud Earrings 14K", "slug": "stud-earrings-14k", "base_price": "60.00", "karat": "14K", "weight_grams": "1.10", "stock_quantity": 30},
    {"name": "Velvet Ring Box", "slug": "velvet-ring-box", "base_price": "15.00", "stock_quantity": 100},
    {"name": "Polishing Cloth", "slug": "polishing-cloth", "base_price": "4.50", "stock_quantity": 250},
]


def _normalize_entry(entry):
    """Return a dict of Product fields from a loosely shaped catalogue entry."""
    name = entry.get("name") or entry.get("title") or ""
    slug = entry.get("slug") or name.lower().replace(" ", "-")
    karat = entry.get("karat")
    if karat and karat.upper() not in KARATS:
        raise ValueError(f"{slug}: unknown karat {karat!r}")
    weight = entry.get("weight_grams")
    return {
        "name": name,
        "slug": slug,
        "sku": entry.get("sku"),
        "description": entry.get("description"),
        "base_price": Decimal(str(entry.get("base_price", entry.get("price", 0)))),
        "karat": karat.upper() if karat else None,
        "weight_grams": Decimal(str(weight)) if weight is not None else None,
        "stock_quantity": int(entry.get("stock_quantity", entry.get("stock", 0)) or 0),
        "is_active": bool(entry.get("is_active", True)),
    }


def seed(entries, gold_price=None, user_id=None):
    init_db()
    db = SessionLocal()
    try:
        repo = ProductRepository(db)
        created = 0
        for raw in entries:
            fields = _normalize_entry(raw)
            if db.query(Product).filter(Product.slug == fields["slug"]).first():
                continue
            repo.create(**fields)
            created += 1
        db.commit()
        print(f"Seeded {created} products ({len(entries) - created} already present).")

        if gold_price is not None:
            gp = PricingService(db).record_gold_price(gold_price, source_api="seed")
            print(f"Recorded gold price id={gp.id} price_per_gram_24k={gp.price_per_gram_24k}")

        if user_id is not None:
            addresses = AddressRepository(db)
            if not addresses.list_for_user(user_id):
                addresses.create(
                    user_id,
                    full_name="Demo Customer",
                    address_line1="1 Market Street",
                    city="Springfield",
                    state_province="IL",
                    postal_code="62701",
                    country="US",
                    address_type="shipping",
                    is_default=True,
                )
                addresses.create(
                    user_id,
                    full_name="Demo Customer",
                    address_line1="1 Market Street",
                    city="Springfield",
                    state_province="IL",
                    postal_code="62701",
                    country="US",
                    address_type="billing",
                    is_default=True,
                )
                db.commit()
                print(f"Created demo addresses for user {user_id}.")
    finally:
        db.close()


def main():
    parser = argparse.ArgumentParser(description="Seed the storefront database.")
    parser.add_argument("--file", help="JSON list of products")
    parser.add_argument("--gold-price", type=Decimal, help="24k price per gram to record")
    parser.add_argument("--user", type=int, help="create demo addresses for this user id")
    args = parser.parse_args()

    entries = DEFAULT_CATALOGUE
    if args.file:
        with open(args.file, encoding="utf-8") as fh:
            entries = json.load(fh)
    seed(entries, gold_price=args.gold_price, user_id=args.user)


if __name__ == "__main__":
    main()
