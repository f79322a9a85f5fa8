import argparse
import random
import sys
from datetime import timedelta
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1]))

from mealmatch import database
from mealmatch.config import DEFAULT_MEAL_LOCATIONS
from mealmatch.main import init_schema
from mealmatch.repo import upsert_survey_profile
from mealmatch.services.availability import get_week_start_date, local_today, put_availability

TOPICS = [
    "Deep philosophical questions",
    "Personal life and emotions",
    "News, tech, or politics",
    "Jokes and light banter",
    "Movies, books, or pop culture",
]
STYLES = [
    "I dive right in with personal questions",
    "I follow their lead and keep it light",
    "I crack jokes to break the ice",
]
PACES = ["Fast, energetic, bouncing between topics", "Chill and meandering", "Thoughtful and slow"]
LUNCH_SLOTS = ["11:30", "12:00", "12:30", "13:00", "13:30"]


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed demo Meal Match users")
    parser.add_argument("--n-users", type=int, default=12)
    parser.add_argument("--seed", type=int, default=42)
    parser.add_argument("--domain", type=str, default="stanford.edu")
    args = parser.parse_args()

    rng = random.Random(args.seed)
    init_schema()
    monday = get_week_start_date(local_today())
    weekdays = [monday + timedelta(days=i) for i in range(5)]

    for i in range(args.n_users):
        user_id = f"demo-user-{i:03d}"
        upsert_survey_profile(
            user_id,
            email=f"demo{i:03d}@{args.domain}",
            display_name=f"Demo {i:03d}",
            meal_talk_preferences=rng.sample(TOPICS, k=rng.randint(1, 3)),
            favorite_locations=rng.sample(DEFAULT_MEAL_LOCATIONS, k=rng.randint(1, 3)),
            contact_detail=f"650555{i:04d}",
            categorical={"conversation_style": rng.choice(STYLES), "conversation_pace": rng.choice(PACES)},
        )
        slots = {
            day.isoformat(): rng.sample(LUNCH_SLOTS, k=rng.randint(1, 3))
            for day in rng.sample(weekdays, k=rng.randint(1, 3))
        }
        with database.SessionLocal() as db:
            put_availability(db, user_id, monday, slots)

    print("Seed completed")
    print(f"- users: {args.n_users}")
    print(f"- week_start_date: {monday.isoformat()}")


if __name__ == "__main__":
    main()
