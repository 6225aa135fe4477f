#!/usr/bin/env python3
"""Create the admin account and load seed claims into the database. Idempotent."""

import json
import os
import sys

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from werkzeug.security import generate_password_hash
from healthproof import create_app
from healthproof.extensions import db
from healthproof.models.claim import Claim, Market
from healthproof.models.coin import ADMIN_GRANT
from healthproof.models.user import User
from healthproof.services.coin_service import CoinLedger

ADMIN_STARTING_COINS = 100


def seed_admin(email, password):
    """Create the admin user if missing. Starting coins go through the ledger."""
    existing = User.query.filter_by(email=email).first()
    if existing:
        print(f"Admin: {email} already exists")
        return existing

    admin = User(
        name='Admin',
        email=email,
        password_hash=generate_password_hash(password),
        is_admin=True,
    )
    db.session.add(admin)
    db.session.commit()

    CoinLedger().credit(
        admin.id, ADMIN_STARTING_COINS, ADMIN_GRANT,
        idempotency_key=f'seed-admin-{admin.id}', note='Seed balance',
    )
    print(f"Admin: {email} created with {ADMIN_STARTING_COINS} coins")
    return admin


def seed_claims(filepath):
    """Load claims from JSON. Skip existing by normalized title."""
    with open(filepath) as f:
        claims = json.load(f)

    added = 0
    skipped = 0
    for c in claims:
        normalized = c['title'].strip().lower()
        existing = Claim.query.filter_by(normalized_title=normalized).first()
        if existing:
            skipped += 1
            continue

        claim = Claim(
            title=c['title'].strip(),
            normalized_title=normalized,
            description=c.get('description'),
            difficulty=c.get('difficulty', 'MEDIUM'),
        )
        claim.market = Market(status=c.get('status', 'ACTIVE'))
        db.session.add(claim)
        added += 1

    db.session.commit()
    print(f"Claims: {added} added, {skipped} skipped (already exist)")


if __name__ == '__main__':
    app = create_app()
    project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

    admin_email = os.environ.get('SEED_ADMIN_EMAIL', 'admin@healthproof.local')
    admin_password = os.environ.get('SEED_ADMIN_PASSWORD')
    if not admin_password:
        sys.exit("SEED_ADMIN_PASSWORD must be set")

    with app.app_context():
        print("Seeding database...")
        seed_admin(admin_email, admin_password)
        seed_claims(os.path.join(project_root, 'seed_claims.json'))
        print("Done.")
