import logging

from journey_backend.config import CRISIS_OVERRIDE_SCORE, DEFAULT_STAGE, MIN_STAGE_SCORE
from journey_backend.schemas import STAGE_ORDER, JourneyContext
from journey_backend.signals import SignalTable, contains_term, load_signal_table, matched_terms, normalise
from journey_backend.state import PipelineState

logger = logging.getLogger(__name__)

# Small lookups for the context fields; first matching group wins.
EMOTIONAL_STATES = [
    ("crisis", ["suicidal", "desperate", "hopeless", "breaking down", "terrified", "panicking"]),
    ("overwhelmed", ["overwhelmed"]),
    ("stressed", ["stressed", "anxious", "panic", "worried", "scared"]),
    ("excited", ["excited", "motivated", "determined"]),
    ("hopeful", ["hopeful"]),
    ("joyful", ["joy", "joyful", "happy", "celebrating", "celebration", "amazing", "wonderful", "fantastic"]),
    ("uncertain", ["unsure", "confused", "lost", "dont know", "not sure", "uncertain"]),
]

HIGH_URGENCY_WORDS = ["urgent", "urgently", "asap", "immediately", "right now", "today", "tonight"]
MEDIUM_URGENCY_WORDS = ["soon", "this week", "within days", "quickly"]

UK_CITIES = [
    "london", "manchester", "birmingham", "leeds", "glasgow", "cardiff", "belfast",
    "bristol", "liverpool", "sheffield", "nottingham", "brighton",
]
RURAL_WORDS = ["rural", "countryside", "village", "small town"]

COMMUNITY_CONNECTION = [
    ("organizing", ["organizing", "organising", "leading", "campaign", "activist", "advocate"]),
    ("isolated", ["alone", "isolated", "no one", "by myself", "no friends", "lonely"]),
    ("connected", ["some friends", "few people", "getting involved", "meeting people"]),
    ("networked", ["community", "friends", "network", "support group", "involved"]),
    ("exploring", ["looking for", "want to meet", "finding community", "new here"]),
]

CHANNEL_PREFERENCES = [
    ("phone", ["call", "phone", "ring", "talk to someone", "speak to someone"]),
    ("online", ["online", "website", "digital", "app", "chat", "email"]),
    ("in_person", ["in person", "face to face", "meet", "visit", "drop in"]),
]


def _first_group(text: str, groups: list[tuple[str, list[str]]], default: str) -> str:
    for label, terms in groups:
        if any(contains_term(text, term) for term in terms):
            return label
    return default


class StageClassifier:
    """Scores a message against the five journey stages using the signal table.

    Never raises for any input: non-string or empty text scores zero on every
    stage and falls through to the default stage.
    """

    def __init__(
        self,
        signal_table: SignalTable | None = None,
        crisis_override_score: float = CRISIS_OVERRIDE_SCORE,
        min_stage_score: float = MIN_STAGE_SCORE,
        default_stage: str = DEFAULT_STAGE,
    ):
        self.signal_table = signal_table or load_signal_table()
        self.crisis_override_score = crisis_override_score
        self.min_stage_score = min_stage_score
        self.default_stage = default_stage

    def stage_score(self, text: str, stage: str) -> float:
        """Matched signal weight over the weight of the categories the stage defines.

        A term listed under more than one category counts once, at the
        heaviest of its weights.
        """
        signals = self.signal_table.stages[stage]
        weights = self.signal_table.weights
        matched: dict[str, float] = {}
        total_possible = 0.0
        for category, terms in signals.categories().items():
            weight = weights[category]
            for term in matched_terms(text, terms):
                matched[term] = max(matched.get(term, 0.0), weight)
            total_possible += weight
        if total_possible <= 0:
            return 0.0
        return min(max(sum(matched.values()) / total_possible, 0.0), 1.0)

    def stage_scores(self, text: str) -> dict[str, float]:
        return {stage: self.stage_score(text, stage) for stage in STAGE_ORDER}

    def classify(
        self,
        message: object,
        previous_stages=(),
        location_hint: str | None = None,
    ) -> JourneyContext:
        text = normalise(message)
        scores = self.stage_scores(text)
        emergency = self.signal_table.has_hard_emergency(text)

        if emergency or scores["crisis"] > self.crisis_override_score:
            stage = "crisis"
        else:
            stage = STAGE_ORDER[0]
            for candidate in STAGE_ORDER[1:]:
                if scores[candidate] > scores[stage]:
                    stage = candidate
            if scores[stage] < self.min_stage_score:
                stage = self.default_stage

        previous = tuple(previous_stages or ())
        return JourneyContext(
            stage=stage,
            emotional_state=detect_emotional_state(text),
            urgency_level=detect_urgency_level(text, stage, emergency),
            location=detect_location(location_hint, text),
            community_connection=detect_community_connection(text),
            channel_preference=detect_channel_preference(text),
            first_time=not previous,
            returning_user=bool(previous),
            previous_stages=previous,
            stage_scores=scores,
            emergency_detected=emergency,
        )


def detect_emotional_state(text: str) -> str:
    return _first_group(text, EMOTIONAL_STATES, "calm")


def detect_urgency_level(text: str, stage: str, emergency: bool) -> str:
    if emergency:
        return "emergency"
    if stage == "crisis":
        return "high"
    if any(contains_term(text, word) for word in HIGH_URGENCY_WORDS):
        return "high"
    if any(contains_term(text, word) for word in MEDIUM_URGENCY_WORDS):
        return "medium"
    return "low"


def detect_location(location_hint: str | None, text: str = "") -> str:
    """Map a free-text location hint (or a city named in the message) to a UK location."""
    hint = normalise(location_hint)
    if hint:
        for city in UK_CITIES:
            if city in hint:
                return city
        if any(word in hint for word in RURAL_WORDS):
            return "rural"
        return "other_urban"
    for city in UK_CITIES:
        if contains_term(text, city):
            return city
    return "unknown"


def detect_community_connection(text: str) -> str:
    return _first_group(text, COMMUNITY_CONNECTION, "exploring")


def detect_channel_preference(text: str) -> str:
    return _first_group(text, CHANNEL_PREFERENCES, "flexible")


def stage_classifier_node(state: PipelineState, classifier: StageClassifier) -> dict:
    """Classify the incoming message into a journey context."""
    logger.debug("[Stage Classifier] INPUT: %r (history=%s)", state.get("message"), state.get("previous_stages"))

    context = classifier.classify(
        state.get("message", ""),
        state.get("previous_stages", ()),
        state.get("location_hint"),
    )

    logger.debug("[Stage Classifier] OUTPUT: stage=%s urgency=%s scores=%s",
                 context.stage, context.urgency_level, context.stage_scores)
    return {"journey_context": context}
