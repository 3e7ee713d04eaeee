#!/usr/bin/env python3
"""
Seed the feed with demo posts owned by an existing user.

Usage:
  python scripts/seed_posts.py --username alice --count 100
  python scripts/seed_posts.py --username alice --count 20 --days 30
"""
import argparse
import asyncio
import random
import sys
from datetime import timedelta

from sqlalchemy import select

from linkboard.db import SessionLocal, create_tables, engine
from linkboard.models import Post, User, utcnow_ms

TITLES = [
    "Against The Sun",
    "Funky Forest: The First Contact",
    "Cats Don't Dance",
    "Futureworld",
    "The Admirable Crichton",
    "Mi Amigo Hugo",
    "Graduation Day",
    "Shadow of a Doubt",
    "Haunted Castle, The",
    "Rocket from Calabuch, The",
]

SENTENCES = [
    "Etiam vel augue.",
    "Vestibulum rutrum rutrum neque.",
    "Aenean auctor gravida sem.",
    "Maecenas ut massa quis augue luctus tincidunt.",
    "Nulla mollis molestie lorem.",
    "Curabitur gravida nisi at nibh.",
    "In hac habitasse platea dictumst.",
    "Integer tincidunt ante vel ipsum.",
    "Praesent blandit lacinia erat.",
    "Proin leo odio, porttitor id, consequat in, consequat ut, nulla.",
]


def fake_text(rng: random.Random) -> str:
    paragraphs = []
    for _ in range(rng.randint(1, 3)):
        paragraphs.append(" ".join(rng.sample(SENTENCES, rng.randint(2, 4))))
    return "\n\n".join(paragraphs)


async def seed(username: str, count: int, days: int, seed_value: int) -> int:
    await create_tables()
    rng = random.Random(seed_value)
    now = utcnow_ms()

    async with SessionLocal() as db:
        result = await db.execute(select(User).where(User.username == username))
        user = result.scalars().first()
        if not user:
            print(f"User not found: {username}")
            return 1

        for _ in range(count):
            age = timedelta(milliseconds=rng.randint(0, days * 24 * 3600 * 1000))
            db.add(Post(
                title=rng.choice(TITLES),
                text=fake_text(rng),
                creator_id=user.id,
                created_at=now - age,
            ))
        await db.commit()

    await engine.dispose()
    print(f"Seeded {count} posts for {username}")
    return 0


def main():
    p = argparse.ArgumentParser(description="Seed demo posts")
    p.add_argument("--username", required=True, help="Owner of the seeded posts")
    p.add_argument("--count", type=int, default=100, help="Number of posts to create")
    p.add_argument("--days", type=int, default=365, help="Spread creation times over this many past days")
    p.add_argument("--seed", type=int, default=0, help="Random seed for reproducible data")
    args = p.parse_args()

    sys.exit(asyncio.run(seed(args.username, args.count, args.days, args.seed)))


if __name__ == "__main__":
    main()
