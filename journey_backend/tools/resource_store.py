import json
import logging
from pathlib import Path

from pydantic import ValidationError

from journey_backend.config import CATALOGUE_PATH
from journey_backend.errors import CatalogueError
from journey_backend.schemas import Catalogue, KnowledgeEntry, Resource

logger = logging.getLogger(__name__)

# Locations entry meaning "available everywhere"
UNIVERSAL_LOCATION = "unknown"


def _location_matches(locations: list[str], location: str) -> bool:
    return location in locations or UNIVERSAL_LOCATION in locations


def _resource_sort_key(resource: Resource) -> tuple[int, int, int]:
    # Emergency first, then free/NHS funded, then culturally specific
    return (
        0 if resource.emergency else 1,
        0 if resource.free_or_nhs else 1,
        0 if resource.culturally_specific else 1,
    )


class ResourceStore:
    """In-memory snapshot of the resource and knowledge catalogue.

    All queries are pure filters over the snapshot. Sorting uses ``sorted``,
    which is stable, so entries equal on every key keep catalogue order.
    """

    def __init__(
        self,
        resources: list[Resource] | None = None,
        knowledge: list[KnowledgeEntry] | None = None,
        version: str = "unversioned",
    ):
        self._resources = list(resources or [])
        self._knowledge = list(knowledge or [])
        self.version = version

    @classmethod
    def from_json(cls, path: Path = CATALOGUE_PATH) -> "ResourceStore":
        """Load a catalogue file.

        Raises:
            CatalogueError: If the file is missing, unreadable or fails validation.
        """
        try:
            raw = json.loads(Path(path).read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise CatalogueError(f"Cannot read catalogue {path}: {e}") from e

        try:
            catalogue = Catalogue.model_validate(raw)
        except ValidationError as e:
            raise CatalogueError(f"Invalid catalogue {path}: {e}") from e

        ids = [r.id for r in catalogue.resources] + [k.id for k in catalogue.knowledge]
        duplicates = sorted({i for i in ids if ids.count(i) > 1})
        if duplicates:
            raise CatalogueError(f"Duplicate catalogue ids in {path}: {duplicates}")

        logger.info(
            "Loaded catalogue %s: %d resources, %d knowledge entries",
            catalogue.version, len(catalogue.resources), len(catalogue.knowledge),
        )
        return cls(catalogue.resources, catalogue.knowledge, catalogue.version)

    @property
    def all_resources(self) -> list[Resource]:
        return list(self._resources)

    @property
    def all_knowledge(self) -> list[KnowledgeEntry]:
        return list(self._knowledge)

    def resources(
        self,
        stage: str,
        location: str,
        urgency: str | None = None,
        category: str | None = None,
    ) -> list[Resource]:
        """Resources for a stage and location, best first."""
        matches = [
            r for r in self._resources
            if stage in r.journey_stages and _location_matches(r.locations, location)
        ]

        if urgency == "emergency":
            matches = [r for r in matches if r.emergency]

        if category:
            wanted = category.lower()
            matches = [r for r in matches if wanted in r.category.lower()]

        return sorted(matches, key=_resource_sort_key)

    def knowledge(self, topic: str, stage: str, location: str) -> list[KnowledgeEntry]:
        """Knowledge entries whose category or a tag contains ``topic``."""
        wanted = (topic or "").lower()
        if not wanted:
            return []

        matches = [
            k for k in self._knowledge
            if stage in k.journey_stages
            and _location_matches(k.locations, location)
            and (
                wanted in k.category.lower()
                or any(wanted in tag.lower() for tag in k.tags)
            )
        ]

        # Community-validated first, then newest first
        matches.sort(key=lambda k: k.last_updated, reverse=True)
        matches.sort(key=lambda k: 0 if k.community_validated else 1)
        return matches

    def emergency_resources(self, location: str) -> list[Resource]:
        """Emergency-flagged resources for a location, 24/7 services first."""
        matches = [
            r for r in self._resources
            if r.emergency and _location_matches(r.locations, location)
        ]
        return sorted(matches, key=lambda r: 0 if "24/7" in r.availability else 1)
