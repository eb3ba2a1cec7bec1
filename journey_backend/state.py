from typing import TypedDict

from journey_backend.schemas import (
    GateDecision,
    JourneyContext,
    KnowledgeEntry,
    Resource,
    ResponseEnvelope,
)
from journey_backend.tools.topics import Topic


class PipelineState(TypedDict, total=False):
    # Inbound
    message: str
    user_id: str
    session_id: str
    location_hint: str | None
    previous_stages: tuple[str, ...]

    # Stage classifier
    journey_context: JourneyContext
    topic: Topic

    # Retrieval
    resources: list[Resource]
    knowledge: list[KnowledgeEntry]

    # Trust scorer
    trust_scores: dict[str, float]  # entity id -> score
    aggregate_trust: float

    # Confidence gate
    gate_decision: GateDecision

    # Composer / honest limitation / polisher
    envelope: ResponseEnvelope
