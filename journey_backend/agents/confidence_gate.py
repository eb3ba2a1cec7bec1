"""Honest response guard.

Decides whether the pipeline has enough verified material to answer. When it
does not, the only reply allowed is the honest limitation response: it never
carries specific information and routes the person to emergency numbers or to
named authoritative sources instead.
"""
import logging
import uuid

from journey_backend.agents.response_composer import next_stage_guidance
from journey_backend.agents.trust_scorer import TrustScorer, aggregate_trust, interpret
from journey_backend.config import (
    HIGH_CONFIDENCE_THRESHOLD,
    MIN_CONFIDENCE_THRESHOLD,
    MIN_KNOWLEDGE_FOR_CONFIDENCE,
    MIN_RESOURCES_FOR_CONFIDENCE,
)
from journey_backend.prompts import (
    CRISIS_LINES,
    EMERGENCY_LIMITATION_MESSAGE,
    HONEST_LIMITATION_MESSAGE,
)
from journey_backend.schemas import (
    GateDecision,
    JourneyContext,
    KnowledgeEntry,
    Resource,
    ResponseEnvelope,
)
from journey_backend.signals import SignalTable, load_signal_table, normalise
from journey_backend.state import PipelineState
from journey_backend.tools.resource_store import ResourceStore
from journey_backend.tools.topics import Topic, topic_profile

logger = logging.getLogger(__name__)

EMERGENCY_OVERRIDE_REASON = "emergency override"


class ConfidenceGate:
    def __init__(
        self,
        signal_table: SignalTable | None = None,
        high_threshold: float = HIGH_CONFIDENCE_THRESHOLD,
        min_threshold: float = MIN_CONFIDENCE_THRESHOLD,
        min_resources: int = MIN_RESOURCES_FOR_CONFIDENCE,
        min_knowledge: int = MIN_KNOWLEDGE_FOR_CONFIDENCE,
    ):
        self.signal_table = signal_table or load_signal_table()
        self.high_threshold = high_threshold
        self.min_threshold = min_threshold
        self.min_resources = min_resources
        self.min_knowledge = min_knowledge

    def evaluate(
        self,
        query: object,
        resources: list[Resource],
        knowledge: list[KnowledgeEntry],
        trust: float,
    ) -> GateDecision:
        """Evaluate the response policy in order; the first rule that fits wins."""
        has_resources = len(resources) >= self.min_resources
        has_knowledge = len(knowledge) >= self.min_knowledge

        if has_resources and has_knowledge and trust >= self.high_threshold:
            return GateDecision(
                should_respond=True,
                confidence_level="high",
                reason="verified resources and knowledge with high trust",
            )

        if (has_resources or has_knowledge) and trust >= self.min_threshold:
            return GateDecision(
                should_respond=True,
                confidence_level="medium",
                reason="some verified material with acceptable trust",
            )

        if self.signal_table.has_hard_emergency(normalise(query)):
            return GateDecision(
                should_respond=True,
                confidence_level="low",
                reason=EMERGENCY_OVERRIDE_REASON,
            )

        return GateDecision(
            should_respond=False,
            confidence_level="insufficient",
            reason=(
                f"insufficient verified information "
                f"({len(resources)} resources, {len(knowledge)} knowledge entries, trust {trust:.2f})"
            ),
        )


def honest_limitation_response(
    context: JourneyContext,
    topic: Topic,
    store: ResourceStore,
    scorer: TrustScorer,
) -> ResponseEnvelope:
    """The only reply allowed when the gate refuses to answer."""
    if context.emergency_detected:
        resources = store.emergency_resources(context.location)
        trust = aggregate_trust(scorer.resource_score(r) for r in resources)
        message = EMERGENCY_LIMITATION_MESSAGE.format(crisis_lines=CRISIS_LINES)
    else:
        resources = []
        trust = 0.0
        profile = topic_profile(topic)
        sources = "\n".join(f"- {s.name}: {s.description}" for s in profile.suggested_sources)
        message = HONEST_LIMITATION_MESSAGE.format(topic_label=profile.label, sources=sources)

    interpretation = interpret(trust)
    return ResponseEnvelope(
        response_id=str(uuid.uuid4()),
        message=message,
        stage=context.stage,
        next_stage_guidance=next_stage_guidance(context.stage),
        resources=resources,
        knowledge=[],
        follow_up_required=context.emergency_detected or context.stage == "crisis",
        culturally_affirming=False,
        specific_information=False,
        trust_score=trust,
        trust_level=interpretation.level,
        trust_description=interpretation.description,
        request_feedback=not context.emergency_detected,
        confidence_level="insufficient",
        source="honest_limitation",
        journey_context=context,
    )


def confidence_gate_node(state: PipelineState, gate: ConfidenceGate) -> dict:
    """Decide whether the pipeline may answer this message."""
    decision = gate.evaluate(
        state.get("message", ""),
        state.get("resources", []),
        state.get("knowledge", []),
        state.get("aggregate_trust", 0.0),
    )
    logger.info(
        "Confidence gate: respond=%s level=%s reason=%s",
        decision.should_respond, decision.confidence_level, decision.reason,
    )
    return {"gate_decision": decision}


def honest_limitation_node(state: PipelineState, store: ResourceStore, scorer: TrustScorer) -> dict:
    context = state["journey_context"]
    envelope = honest_limitation_response(context, state.get("topic", Topic.GENERAL), store, scorer)
    logger.info(
        "Honest limitation response for stage=%s topic=%s emergency=%s",
        context.stage, state.get("topic", Topic.GENERAL).value, context.emergency_detected,
    )
    return {"envelope": envelope}
