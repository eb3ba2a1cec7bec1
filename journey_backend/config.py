import os
from pathlib import Path

# OpenAI (optional message polishing)
AGENT_MODELS = {
    "message_polisher": "gpt-5-mini",
}
POLISH_ENABLED = os.getenv("JOURNEY_POLISH", "0") == "1"
MAX_POLISH_RETRIES = 3
POLISH_RETRY_DELAYS = [1, 2, 4]  # Exponential backoff

# Stage classifier
CRISIS_OVERRIDE_SCORE = 0.7
MIN_STAGE_SCORE = 0.3
DEFAULT_STAGE = "growth"

# Confidence gate
HIGH_CONFIDENCE_THRESHOLD = 0.7
MIN_CONFIDENCE_THRESHOLD = 0.3
MIN_RESOURCES_FOR_CONFIDENCE = 1
MIN_KNOWLEDGE_FOR_CONFIDENCE = 1

# Trust scoring
KNOWLEDGE_TRUST_WEIGHTS = {
    "verification": 0.3,
    "recency": 0.3,
    "sources": 0.4,
}
VERIFICATION_SCORES = {
    "verified": 1.0,
    "pending": 0.5,
    "outdated": 0.2,
}
COMMUNITY_VALIDATION_BONUS = 0.2
# (max age in days, score); anything older gets STALE_RECENCY_SCORE
RECENCY_BANDS = [
    (30, 1.0),
    (90, 0.8),
    (180, 0.5),
    (365, 0.3),
]
STALE_RECENCY_SCORE = 0.1
EMERGENCY_TRUST_FLOOR = 0.8
# (minimum score, level, description), highest first
TRUST_LEVELS = [
    (0.7, "high", "Highly trusted - verified official sources"),
    (0.5, "medium", "Good trust - reliable sources with recent updates"),
    (0.3, "low", "Limited trust - older information or unverified sources"),
    (0.0, "very_low", "Low trust - outdated or unverified information"),
]

# URL reachability
URL_PROBES_ENABLED = os.getenv("JOURNEY_URL_PROBES", "0") == "1"
URL_PROBE_TIMEOUT = 2  # seconds
URL_CACHE_EXPIRY_HOURS = 24
URL_PROBE_CONCURRENCY = 5
URL_PROBE_USER_AGENT = "journey-assistant-trust-check/1.0"

# Response composer
MAX_RESOURCES_IN_RESPONSE = 5
MAX_KNOWLEDGE_IN_RESPONSE = 3

# Per-user journey history
HISTORY_MAX_STAGES = 20
HISTORY_MAX_USERS = 10_000

# File paths
PACKAGE_ROOT = Path(__file__).resolve().parent
PROJECT_ROOT = PACKAGE_ROOT.parent
DATA_DIR = PACKAGE_ROOT / "data"
SIGNAL_TABLE_PATH = DATA_DIR / "journey_signals.json"
CATALOGUE_PATH = DATA_DIR / "catalogue.json"
LOGS_DIR = PROJECT_ROOT / "logs"
FEEDBACK_CSV = LOGS_DIR / "feedback.csv"
JOURNEY_LOG_CSV = LOGS_DIR / "journey_log.csv"

# Logging
LOG_LEVEL = os.getenv("JOURNEY_LOG_LEVEL", "INFO")
LOG_FORMAT = "%(asctime)s | %(levelname)-7s | %(name)-40s | %(message)s"
