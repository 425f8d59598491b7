"""
Script to seed the default achievement catalog into the database.
Run with: python -m scripts.seed_achievements
"""

import asyncio
import logging
from collections import Counter

from hardlevel.core.database import async_session_maker, init_db
from hardlevel.services.achievement_seeder import generate_all_achievements, seed_achievements

logger = logging.getLogger(__name__)


async def main() -> None:
    await init_db()

    async with async_session_maker() as session:
        inserted = await seed_achievements(session)
        await session.commit()

    catalog = generate_all_achievements()
    if inserted == 0:
        print(f"Achievements already seeded ({len(catalog)} definitions).")
        return

    print(f"Seeded {inserted} of {len(catalog)} achievement definitions.")
    print("\nSummary by category:")
    for category, count in sorted(Counter(a["category"] for a in catalog).items()):
        print(f"  {category}: {count}")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(main())
