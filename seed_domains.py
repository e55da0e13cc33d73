# seed_domains.py
"""Seed database with parent domains (development only)."""

import sys

from subdomain_engine.core.errors import StoreError
from subdomain_engine.infrastructure.postgres.database import init_db
from subdomain_engine.infrastructure.postgres.repository import PostgresDomainRepository


def main(names):
    print("🌱 Seeding parent domains...")
    print()

    init_db()
    repo = PostgresDomainRepository()

    for name in names:
        try:
            domain = repo.add(name)
            print(f"✅ Created {domain.name} (id={domain.id})")
        except StoreError as e:
            print(f"⚠️  {name} already exists or error: {e}")

    print()
    print("🎉 Domain seeding complete!")


if __name__ == "__main__":
    main(sys.argv[1:] or ["example.com"])
