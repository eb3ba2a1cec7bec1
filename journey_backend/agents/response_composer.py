import logging
import uuid
from dataclasses import dataclass

from journey_backend.agents.trust_scorer import TrustScorer, aggregate_trust, interpret
from journey_backend.config import MAX_KNOWLEDGE_IN_RESPONSE, MAX_RESOURCES_IN_RESPONSE
from journey_backend.prompts import CRISIS_LINES
from journey_backend.schemas import (
    GateDecision,
    JourneyContext,
    KnowledgeEntry,
    Resource,
    ResponseEnvelope,
)
from journey_backend.state import PipelineState

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StagePolicy:
    opening: str
    resource_heading: str
    knowledge_heading: str
    closing: str
    knowledge_first: bool = False


STAGE_POLICIES: dict[str, StagePolicy] = {
    "crisis": StagePolicy(
        opening="I'm really glad you reached out. Your safety comes first.",
        resource_heading="Immediate support available to you:",
        knowledge_heading="Information that may help right now:",
        closing="You deserve support, and you don't have to face this alone.",
    ),
    "stabilization": StagePolicy(
        opening="It sounds like you're working on finding steady ground. Here is some practical support.",
        resource_heading="Services that can help you stay on track:",
        knowledge_heading="Things worth knowing:",
        closing="Taking things one step at a time is still progress.",
    ),
    "growth": StagePolicy(
        opening="It's great that you're exploring this. Here is some verified information to help you.",
        resource_heading="Where to find out more:",
        knowledge_heading="What you should know:",
        closing="Let me know if you would like more detail on any of these.",
        knowledge_first=True,
    ),
    "community_healing": StagePolicy(
        opening="Connecting with community can be a powerful part of healing.",
        resource_heading="Spaces and groups you could connect with:",
        knowledge_heading="Background that may help:",
        closing="Your experience could also support others on their own journey.",
    ),
    "advocacy": StagePolicy(
        opening="Thank you for wanting to make change for your community.",
        resource_heading="Organisations working on this:",
        knowledge_heading="Your rights and the wider picture:",
        closing="Collective action starts with people like you.",
        knowledge_first=True,
    ),
}

# stage -> (next stage, why it follows)
NEXT_STAGE = {
    "crisis": ("stabilization", "once you are safe, the focus moves to finding steady, ongoing support"),
    "stabilization": ("growth", "with things more stable, you can start exploring what you want next"),
    "growth": ("community_healing", "connecting with others who share your experience can deepen that growth"),
    "community_healing": ("advocacy", "many people go on to use their experience to support wider change"),
    "advocacy": ("community_healing", "advocacy comes full circle by strengthening the community that supports you"),
}

LOWER_CONFIDENCE_NOTE = (
    "Some of this information is still being verified, so please check the "
    "details with the service directly."
)


def next_stage_guidance(stage: str) -> str:
    next_stage, rationale = NEXT_STAGE[stage]
    return f"Next step: {next_stage.replace('_', ' ')} - {rationale}."


def needs_follow_up(context: JourneyContext) -> bool:
    """Crisis, urgent, isolated and first-time-stabilising users get a follow-up."""
    if context.stage == "crisis":
        return True
    if context.urgency_level in ("emergency", "high"):
        return True
    if context.community_connection == "isolated":
        return True
    return context.first_time and context.stage == "stabilization"


def format_resource(resource: Resource) -> str:
    line = f"- {resource.title}: {resource.description}"
    contact = [c for c in (resource.phone, resource.website) if c]
    if contact:
        line += f" ({', '.join(contact)})"
    if resource.availability:
        line += f" [{resource.availability}]"
    return line


def format_knowledge(entry: KnowledgeEntry) -> str:
    return f"- {entry.title}: {entry.content}"


class ResponseComposer:
    """Builds the reply envelope for an approved message, one policy per stage."""

    def __init__(
        self,
        scorer: TrustScorer | None = None,
        max_resources: int = MAX_RESOURCES_IN_RESPONSE,
        max_knowledge: int = MAX_KNOWLEDGE_IN_RESPONSE,
    ):
        self.scorer = scorer or TrustScorer()
        self.max_resources = max_resources
        self.max_knowledge = max_knowledge

    def select(
        self, context: JourneyContext, resources: list[Resource], knowledge: list[KnowledgeEntry]
    ) -> tuple[list[Resource], list[KnowledgeEntry]]:
        """Cap the ranked lists; crisis replies put emergency resources first."""
        if context.stage == "crisis":
            resources = sorted(resources, key=lambda r: 0 if r.emergency else 1)
        return list(resources[: self.max_resources]), list(knowledge[: self.max_knowledge])

    def compose_message(
        self,
        context: JourneyContext,
        resources: list[Resource],
        knowledge: list[KnowledgeEntry],
        confidence_level: str,
    ) -> str:
        policy = STAGE_POLICIES[context.stage]
        parts = []

        if context.stage == "crisis":
            parts.append(CRISIS_LINES)
        parts.append(policy.opening)

        resource_block = ""
        if resources:
            resource_block = "\n".join([policy.resource_heading] + [format_resource(r) for r in resources])
        knowledge_block = ""
        if knowledge:
            knowledge_block = "\n".join([policy.knowledge_heading] + [format_knowledge(k) for k in knowledge])

        blocks = [knowledge_block, resource_block] if policy.knowledge_first else [resource_block, knowledge_block]
        parts.extend(block for block in blocks if block)

        if confidence_level in ("medium", "low") and (resources or knowledge):
            parts.append(LOWER_CONFIDENCE_NOTE)
        parts.append(policy.closing)
        return "\n\n".join(parts)

    def compose(
        self,
        context: JourneyContext,
        resources: list[Resource],
        knowledge: list[KnowledgeEntry],
        trust_scores: dict[str, float],
        decision: GateDecision,
    ) -> ResponseEnvelope:
        surfaced_resources, surfaced_knowledge = self.select(context, resources, knowledge)

        surfaced_ids = [r.id for r in surfaced_resources] + [k.id for k in surfaced_knowledge]
        trust = aggregate_trust(trust_scores[i] for i in surfaced_ids if i in trust_scores)
        interpretation = interpret(trust)

        return ResponseEnvelope(
            response_id=str(uuid.uuid4()),
            message=self.compose_message(context, surfaced_resources, surfaced_knowledge, decision.confidence_level),
            stage=context.stage,
            next_stage_guidance=next_stage_guidance(context.stage),
            resources=surfaced_resources,
            knowledge=surfaced_knowledge,
            follow_up_required=needs_follow_up(context),
            culturally_affirming=any(r.culturally_specific for r in surfaced_resources),
            specific_information=bool(surfaced_resources or surfaced_knowledge),
            trust_score=trust,
            trust_level=interpretation.level,
            trust_description=interpretation.description,
            source_verification=self.scorer.verify_sources(surfaced_knowledge),
            request_feedback=True,
            confidence_level=decision.confidence_level,
            source="journey_pipeline",
            journey_context=context,
        )


def response_composer_node(state: PipelineState, composer: ResponseComposer) -> dict:
    """Compose the stage-appropriate reply once the gate has approved."""
    envelope = composer.compose(
        state["journey_context"],
        state.get("resources", []),
        state.get("knowledge", []),
        state.get("trust_scores", {}),
        state["gate_decision"],
    )
    logger.debug(
        "[Response Composer] OUTPUT: stage=%s resources=%d knowledge=%d follow_up=%s",
        envelope.stage, len(envelope.resources), len(envelope.knowledge), envelope.follow_up_required,
    )
    return {"envelope": envelope}
