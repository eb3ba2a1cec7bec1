import csv
import hashlib
from datetime import datetime, timezone
from pathlib import Path

from journey_backend.config import FEEDBACK_CSV

FEEDBACK_HEADERS = [
    "timestamp",
    "response_id",
    "user_hash",
    "rating",
    "helpful",
    "comment",
]


def anonymise_user_id(user_id: str) -> str:
    """Stable, non-reversible short id so feedback rows can be grouped per user."""
    return hashlib.sha256(user_id.encode("utf-8")).hexdigest()[:12]


def write_feedback(
    response_id: str,
    user_id: str,
    rating: int,
    helpful: bool,
    comment: str | None = None,
    path: Path = FEEDBACK_CSV,
) -> None:
    """Append a row to the feedback CSV."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    file_exists = path.exists()

    with open(path, "a", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        if not file_exists:
            writer.writerow(FEEDBACK_HEADERS)
        writer.writerow([
            datetime.now(timezone.utc).isoformat(),
            response_id,
            anonymise_user_id(user_id),
            rating,
            helpful,
            comment or "",
        ])
