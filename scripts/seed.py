"""
Seed Script

Creates the campus canteens, a starter menu for each and one account per
role, then writes bearer tokens for those accounts to a JSON file that
scripts/simulate.py reads.

Run from project root: python scripts/seed.py --out tokens.json
"""

import argparse
import asyncio
import json
import os
import sys

from sqlalchemy import select

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from canteen.core.config import get_settings, setup_logging  # noqa: E402
from canteen.core.security import create_access_token, hash_password  # noqa: E402
from canteen.database import Database  # noqa: E402
from canteen.models import Canteen, MenuCategory, MenuItem, User, UserRole  # noqa: E402

CANTEENS = [
    ("East Canteen", "EAST"),
    ("Namma Canteen", "NAMMA"),
    ("Core Canteen", "CORE"),
    ("KS Canteen", "KS"),
    ("Munch Box", "MUNCH"),
]

DEMO_PASSWORD = "canteen123"

STARTER_MENU = [
    ("Filter Coffee", MenuCategory.BEVERAGES, 20.0),
    ("Masala Chai", MenuCategory.BEVERAGES, 15.0),
    ("Samosa", MenuCategory.SNACKS, 15.0),
    ("Veg Puff", MenuCategory.SNACKS, 25.0),
    ("Veg Biryani", MenuCategory.MEALS, 90.0),
    ("Mini Thali", MenuCategory.MEALS, 80.0),
]


async def seed(out_path: str) -> None:
    settings = get_settings()
    database = Database.from_settings(settings)
    await database.create_all()

    async with database.session() as session:
        existing = (await session.execute(select(Canteen.code))).scalars().all()
        canteens = {}
        for name, code in CANTEENS:
            if code in existing:
                continue
            canteen = Canteen(name=name, code=code)
            session.add(canteen)
            canteens[code] = canteen
        await session.flush()

        for canteen in canteens.values():
            session.add_all(
                MenuItem(canteen_id=canteen.id, name=name, category=category, price=price)
                for name, category, price in STARTER_MENU
            )

        east = (await session.execute(select(Canteen).where(Canteen.code == "EAST"))).scalar_one()
        accounts = {
            "student": ("Demo Student", "student@campus.edu", UserRole.STUDENT, None),
            "staff": ("Demo Staff", "staff@campus.edu", UserRole.STAFF, None),
            "admin": ("Demo Admin", "admin@campus.edu", UserRole.ADMIN, None),
            "kitchen": ("East Kitchen", "kitchen.east@campus.edu", UserRole.KITCHEN, east.id),
        }
        users = {}
        for key, (name, email, role, canteen_id) in accounts.items():
            user = (await session.execute(select(User).where(User.email == email))).scalar_one_or_none()
            if user is None:
                user = User(
                    name=name,
                    email=email,
                    password_hash=hash_password(settings, DEMO_PASSWORD),
                    role=role,
                    canteen_id=canteen_id,
                )
                session.add(user)
            users[key] = user

        await session.commit()

        tokens = {key: create_access_token(settings, user.id, user.role) for key, user in users.items()}

    await database.dispose()

    with open(out_path, "w") as f:
        json.dump({"canteenId": east.id, "tokens": tokens}, f, indent=2)

    print(f"✅ Seeded {len(canteens)} new canteen(s); tokens written to {out_path}")
    print(f"   Demo accounts log in with password {DEMO_PASSWORD!r}")
    for key, user in users.items():
        print(f"   {key:<8} user #{user.id} ({user.email})")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed canteens, menus and demo accounts")
    parser.add_argument("--out", default="tokens.json", help="Where to write the demo tokens")
    args = parser.parse_args()

    setup_logging()
    asyncio.run(seed(args.out))
