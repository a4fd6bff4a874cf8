"""Management CLI.

Usage:
    python -m smarttherapy.cli seed-tiers     # Insert/refresh subscription tiers
    python -m smarttherapy.cli list-tiers     # Show subscription tiers
"""

import sys

from sqlalchemy import create_engine, select
from sqlalchemy.orm import Session

from smarttherapy.config import settings
from smarttherapy.models.subscription_tier import SubscriptionTier

# Prices in IDR
DEFAULT_TIERS = [
    {
        "name": "Beta",
        "code": "beta",
        "description": "For solo practitioners getting started",
        "monthly_price": 50_000,
        "yearly_price": 550_000,
        "therapist_limit": 1,
        "new_clients_per_day_limit": 1,
        "is_recommended": False,
        "sort_order": 1,
    },
    {
        "name": "Alpha",
        "code": "alpha",
        "description": "For small clinics with a few therapists",
        "monthly_price": 100_000,
        "yearly_price": 1_000_000,
        "therapist_limit": 3,
        "new_clients_per_day_limit": 3,
        "is_recommended": True,
        "sort_order": 2,
    },
    {
        "name": "Theta",
        "code": "theta",
        "description": "For growing clinics",
        "monthly_price": 150_000,
        "yearly_price": 1_500_000,
        "therapist_limit": 5,
        "new_clients_per_day_limit": 5,
        "is_recommended": False,
        "sort_order": 3,
    },
]


def _engine():
    return create_engine(settings.database_url_sync)


def seed_tiers():
    with Session(_engine()) as session:
        for values in DEFAULT_TIERS:
            tier = session.execute(
                select(SubscriptionTier).where(SubscriptionTier.code == values["code"])
            ).scalar_one_or_none()
            if tier is None:
                session.add(SubscriptionTier(**values))
                print(f"  Created {values['code']}")
            else:
                for key, value in values.items():
                    setattr(tier, key, value)
                print(f"  Updated {values['code']}")
        session.commit()


def list_tiers():
    with Session(_engine()) as session:
        tiers = session.execute(
            select(SubscriptionTier).order_by(SubscriptionTier.sort_order)
        ).scalars().all()
        for t in tiers:
            flag = " *" if t.is_recommended else ""
            print(f"  {t.code:<8} {t.monthly_price:>10,}/mo {t.yearly_price:>12,}/yr{flag}")
        print(f"\n{len(tiers)} tier(s)")


if __name__ == "__main__":
    cmd = sys.argv[1] if len(sys.argv) > 1 else ""
    if cmd == "seed-tiers":
        seed_tiers()
    elif cmd == "list-tiers":
        list_tiers()
    else:
        print(__doc__)
        sys.exit(1)
