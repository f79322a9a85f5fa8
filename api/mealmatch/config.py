import json
import os
from typing import Any

JWT_SECRET = os.getenv("JWT_SECRET", "")
ACCESS_TOKEN_TTL_MINUTES = int(os.getenv("ACCESS_TOKEN_TTL_MINUTES", "60"))
ALLOWED_EMAIL_DOMAIN = os.getenv("ALLOWED_EMAIL_DOMAIN", "stanford.edu").strip().lower()
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

MATCH_TIMEZONE = os.getenv("MATCH_TIMEZONE", "America/Los_Angeles")
MATCH_CANDIDATE_CAP = int(os.getenv("MATCH_CANDIDATE_CAP", "3"))
PROPOSAL_CAS_ATTEMPTS = int(os.getenv("PROPOSAL_CAS_ATTEMPTS", "5"))
EVENT_CAS_ATTEMPTS = int(os.getenv("EVENT_CAS_ATTEMPTS", "5"))
EVENT_MAX_CAPACITY = int(os.getenv("EVENT_MAX_CAPACITY", "50"))

SLOT_MINUTES = int(os.getenv("SLOT_MINUTES", "30"))

SCORE_MIN = 0.0
SCORE_MAX = 10.0
BASELINE_FLOOR = float(os.getenv("BASELINE_FLOOR", "3"))
BASELINE_CEIL = float(os.getenv("BASELINE_CEIL", "7"))
BASELINE_DEFAULT = float(os.getenv("BASELINE_DEFAULT", "5"))

SCORE_DELTA_FIRST_ACCEPT = float(os.getenv("SCORE_DELTA_FIRST_ACCEPT", "1"))
SCORE_DELTA_MATCHED = float(os.getenv("SCORE_DELTA_MATCHED", "3"))
SCORE_DELTA_DECLINE = float(os.getenv("SCORE_DELTA_DECLINE", "-1"))

BASELINE_WEIGHTS: dict[str, Any] = {
    "topics": float(os.getenv("BASELINE_TOPICS_W", "0.40")),
    "categorical": float(os.getenv("BASELINE_CATEGORICAL_W", "0.35")),
    "locations": float(os.getenv("BASELINE_LOCATIONS_W", "0.25")),
}

if os.getenv("BASELINE_WEIGHTS_JSON"):
    try:
        BASELINE_WEIGHTS.update(json.loads(os.getenv("BASELINE_WEIGHTS_JSON", "{}")))
    except json.JSONDecodeError:
        pass

CATEGORICAL_FIELDS = (
    "conversation_style",
    "disagreement_tolerance",
    "conversation_pace",
    "food_personality",
    "companion_pet_peeve",
)

DEFAULT_MEAL_LOCATIONS = [
    "Tresidder Union",
    "Coho Cafe",
    "Arbuckle Dining",
    "Bytes Cafe",
    "The Axe & Palm",
]
