"""Entry point for the journey pipeline.

``ConversationOrchestrator.generate_response`` never raises for string input:
any unexpected fault becomes the apologetic fallback envelope, which is
labelled ``source="fallback"`` so it can be told apart from an honest
limitation reply.
"""
import logging
import uuid
from concurrent.futures import ThreadPoolExecutor
from typing import Callable

from journey_backend.agents.confidence_gate import ConfidenceGate, honest_limitation_response
from journey_backend.agents.message_polisher import MessagePolisher
from journey_backend.agents.response_composer import ResponseComposer, next_stage_guidance
from journey_backend.agents.stage_classifier import (
    StageClassifier,
    detect_channel_preference,
    detect_community_connection,
    detect_location,
)
from journey_backend.agents.trust_scorer import TrustScorer, aggregate_trust
from journey_backend.config import DEFAULT_STAGE
from journey_backend.graph import build_graph
from journey_backend.history import JourneyHistory
from journey_backend.logging_.feedback_writer import write_feedback
from journey_backend.logging_.journey_log import write_journey_log
from journey_backend.prompts import FALLBACK_MESSAGE
from journey_backend.schemas import STAGE_ORDER, JourneyContext, ResponseEnvelope
from journey_backend.signals import normalise
from journey_backend.tools.resource_store import ResourceStore
from journey_backend.tools.topics import Topic

logger = logging.getLogger(__name__)


def user_id_from(user_context: dict) -> str | None:
    """Accepts both the `user_id` key and the camel-case `userId` key."""
    return user_context.get("user_id") or user_context.get("userId")


def fallback_envelope(context: JourneyContext | None = None) -> ResponseEnvelope:
    stage = context.stage if context is not None else DEFAULT_STAGE
    return ResponseEnvelope(
        response_id=str(uuid.uuid4()),
        message=FALLBACK_MESSAGE,
        stage=stage,
        next_stage_guidance=next_stage_guidance(stage),
        trust_score=0.0,
        trust_level="very_low",
        trust_description="No information could be verified",
        request_feedback=False,
        confidence_level="error",
        source="fallback",
        journey_context=context,
    )


class ConversationOrchestrator:
    def __init__(
        self,
        classifier: StageClassifier | None = None,
        resource_store: ResourceStore | None = None,
        scorer: TrustScorer | None = None,
        gate: ConfidenceGate | None = None,
        composer: ResponseComposer | None = None,
        polisher: MessagePolisher | None = None,
        history: JourneyHistory | None = None,
        feedback_sink: Callable[..., None] = write_feedback,
        analytics_sink: Callable[[ResponseEnvelope], None] | None = write_journey_log,
    ):
        self.classifier = classifier or StageClassifier()
        self.resource_store = resource_store or ResourceStore.from_json()
        self.scorer = scorer or TrustScorer()
        self.gate = gate or ConfidenceGate(self.classifier.signal_table)
        self.composer = composer or ResponseComposer(self.scorer)
        self.polisher = polisher or MessagePolisher()
        self.history = history if history is not None else JourneyHistory()
        self.feedback_sink = feedback_sink
        self.analytics_sink = analytics_sink

        self.graph = build_graph(
            self.classifier,
            self.resource_store,
            self.scorer,
            self.gate,
            self.composer,
            self.polisher,
        )
        self._feedback_pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix="feedback")

    # ── Main path ──────────────────────────────────────────────────────────

    def generate_response(
        self,
        message: object,
        user_context: dict | None = None,
        session_id: str | None = None,
    ) -> ResponseEnvelope:
        """Run one message through the pipeline and record the stage for the user.

        `user_context` may carry `user_id` (or `userId`) and a free-text `location`.
        """
        user_context = user_context or {}
        user_id = user_id_from(user_context)
        if not isinstance(message, str):
            message = ""

        try:
            previous = self.history.stages(user_id) if user_id else ()
            result = self.graph.invoke({
                "message": message,
                "user_id": user_id or "",
                "session_id": session_id or str(uuid.uuid4()),
                "location_hint": user_context.get("location"),
                "previous_stages": previous,
            })
            envelope = result["envelope"]
        except Exception:
            logger.exception("Journey pipeline failed; returning fallback response")
            return fallback_envelope()

        if user_id:
            self.history.append(user_id, envelope.stage)
        self._log_journey(envelope)
        return envelope

    def emergency_response(
        self, message: object = "", user_context: dict | None = None
    ) -> ResponseEnvelope:
        """Crisis reply without classification, for callers that already know it is an emergency."""
        user_context = user_context or {}
        user_id = user_id_from(user_context)
        text = normalise(message)

        try:
            previous = self.history.stages(user_id) if user_id else ()
            context = JourneyContext(
                stage="crisis",
                emotional_state="crisis",
                urgency_level="emergency",
                location=detect_location(user_context.get("location"), text),
                community_connection=detect_community_connection(text),
                channel_preference=detect_channel_preference(text),
                first_time=not previous,
                returning_user=bool(previous),
                previous_stages=previous,
                emergency_detected=True,
            )
            resources = self.resource_store.emergency_resources(context.location)
            scores = self.scorer.score_all(resources, [])
            decision = self.gate.evaluate(text, resources, [], aggregate_trust(scores.values()))
            if decision.should_respond:
                envelope = self.composer.compose(context, resources, [], scores, decision)
            else:
                envelope = honest_limitation_response(context, Topic.GENERAL, self.resource_store, self.scorer)
        except Exception:
            logger.exception("Emergency response failed; returning fallback response")
            return fallback_envelope()

        if user_id:
            self.history.append(user_id, "crisis")
        self._log_journey(envelope)
        return envelope

    # ── Journey history read path ──────────────────────────────────────────

    def journey_progression(self, user_id: str) -> tuple[str, ...]:
        return self.history.stages(user_id)

    def assess_next_stage_readiness(self, user_id: str, context: JourneyContext) -> bool:
        """Returning user, not in crisis, with an earlier stage somewhere in their history."""
        if not context.returning_user or context.stage == "crisis":
            return False
        prior = self.history.stages(user_id) or context.previous_stages
        current = STAGE_ORDER.index(context.stage)
        return any(STAGE_ORDER.index(stage) < current for stage in prior)

    # ── Feedback ───────────────────────────────────────────────────────────

    def record_feedback(
        self,
        response_id: str,
        user_id: str,
        rating: int,
        helpful: bool,
        comment: str | None = None,
    ) -> None:
        """Hand feedback to the sink in the background; errors never reach the caller."""
        try:
            self._feedback_pool.submit(self._send_feedback, response_id, user_id, rating, helpful, comment)
        except RuntimeError as e:
            # Pool already shut down
            logger.warning("Feedback for response %s dropped: %s", response_id, e)

    def _send_feedback(self, response_id, user_id, rating, helpful, comment) -> None:
        try:
            self.feedback_sink(
                response_id=response_id,
                user_id=user_id,
                rating=rating,
                helpful=helpful,
                comment=comment,
            )
        except Exception as e:
            logger.warning("Feedback sink failed for response %s: %s", response_id, e)

    def _log_journey(self, envelope: ResponseEnvelope) -> None:
        if self.analytics_sink is None:
            return
        try:
            self.analytics_sink(envelope)
        except Exception as e:
            logger.warning("Journey analytics sink failed: %s", e)

    # ── Health / lifecycle ─────────────────────────────────────────────────

    def system_health(self) -> dict:
        """Component status and counts. Expired reachability entries are pruned first."""
        pruned = self.scorer.checker.prune()
        cache = self.scorer.checker.cache
        return {
            "status": "healthy",
            "components": {
                "stage_classifier": "active",
                "resource_store": "active",
                "trust_scorer": "active",
                "confidence_gate": "active",
                "response_composer": "active",
                "message_polisher": "enabled" if self.polisher.enabled else "disabled",
                "url_probes": "enabled" if self.scorer.checker.enabled else "disabled",
            },
            "catalogue_version": self.resource_store.version,
            "resources": len(self.resource_store.all_resources),
            "knowledge_entries": len(self.resource_store.all_knowledge),
            "signal_table_version": self.classifier.signal_table.version,
            "tracked_users": len(self.history),
            "reachability_cache": {
                "entries": len(cache) if hasattr(cache, "__len__") else None,
                "hit_rate": getattr(cache, "hit_rate", None),
                "pruned": pruned,
            },
        }

    def close(self) -> None:
        """Wait for queued feedback to be written."""
        self._feedback_pool.shutdown(wait=True)
