import csv
from datetime import datetime, timezone
from pathlib import Path

from journey_backend.config import JOURNEY_LOG_CSV
from journey_backend.schemas import ResponseEnvelope

JOURNEY_LOG_HEADERS = [
    "timestamp",
    "stage",
    "region",
    "resources_cited",
    "knowledge_cited",
    "follow_up_required",
    "confidence_level",
    "source",
]

# Cities are coarsened to a region before anything is written
REGIONS = {
    "london": "london",
    "brighton": "south_east",
    "bristol": "south_west",
    "cardiff": "wales",
    "birmingham": "midlands",
    "nottingham": "midlands",
    "manchester": "north_england",
    "liverpool": "north_west",
    "leeds": "north_england",
    "sheffield": "north_england",
    "glasgow": "scotland",
    "belfast": "northern_ireland",
    "other_urban": "urban",
    "rural": "rural",
}


def region_for(location: str) -> str:
    return REGIONS.get(location, "unknown")


def write_journey_log(envelope: ResponseEnvelope, path: Path = JOURNEY_LOG_CSV) -> None:
    """Append a privacy-preserving analytics row for one reply."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    location = envelope.journey_context.location if envelope.journey_context else "unknown"
    file_exists = path.exists()

    with open(path, "a", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        if not file_exists:
            writer.writerow(JOURNEY_LOG_HEADERS)
        writer.writerow([
            datetime.now(timezone.utc).isoformat(),
            envelope.stage,
            region_for(location),
            len(envelope.resources),
            len(envelope.knowledge),
            envelope.follow_up_required,
            envelope.confidence_level,
            envelope.source,
        ])
