import logging
from datetime import datetime, timezone
from typing import Callable
from urllib.parse import urlparse

from journey_backend.config import (
    COMMUNITY_VALIDATION_BONUS,
    EMERGENCY_TRUST_FLOOR,
    KNOWLEDGE_TRUST_WEIGHTS,
    RECENCY_BANDS,
    STALE_RECENCY_SCORE,
    TRUST_LEVELS,
    URL_PROBES_ENABLED,
    VERIFICATION_SCORES,
)
from journey_backend.schemas import (
    KnowledgeEntry,
    Resource,
    SourceVerification,
    TrustInterpretation,
)
from journey_backend.state import PipelineState
from journey_backend.tools.reachability import ReachabilityChecker, is_probeable_url

logger = logging.getLogger(__name__)

# (domains, names, quality), checked in order. URL and bare-domain sources
# match on the host suffix; anything else must equal one of the names.
KNOWN_AUTHORITIES = [
    (("nhs.uk", "gov.uk", "equalityhumanrights.com", "acas.org.uk"),
     ("nhs", "ehrc", "equality and human rights commission", "acas"), 1.0),
    (("menrus.co.uk", "tht.org.uk", "stonewall.org.uk", "mind.org.uk", "shelter.org.uk",
      "samaritans.org", "citizensadvice.org.uk", "ukblackpride.org.uk"),
     ("terrence higgins trust", "stonewall", "mind", "shelter", "samaritans",
      "citizens advice", "uk black pride"), 0.8),
    (("ac.uk", "edu"), (), 0.7),
]
REACHABLE_SOURCE_SCORE = 0.6
NEUTRAL_SOURCE_SCORE = 0.5
UNREACHABLE_SOURCE_SCORE = 0.0

RESOURCE_BASE_SCORE = 0.4
FREE_OR_NHS_BONUS = 0.3
CULTURAL_BONUSES = {
    "black_specific": 0.1,
    "lgbtq_specific": 0.1,
    "trans_specific": 0.05,
}
WEBSITE_REACHABLE_BONUS = 0.1
WEBSITE_UNREACHABLE_PENALTY = 0.1


def _clamp(value: float) -> float:
    return min(max(value, 0.0), 1.0)


def _source_host(source: str) -> str | None:
    if is_probeable_url(source):
        return (urlparse(source).hostname or "").lower() or None
    candidate = source.strip().lower()
    if "." in candidate and " " not in candidate and "/" not in candidate:
        return candidate
    return None


def known_authority_score(source: str) -> float | None:
    host = _source_host(source)
    name = " ".join(source.lower().split())
    for domains, names, quality in KNOWN_AUTHORITIES:
        if host is not None:
            if any(host == domain or host.endswith("." + domain) for domain in domains):
                return quality
        elif name in names:
            return quality
    return None


def interpret(score: float) -> TrustInterpretation:
    """Display tier for a trust score. Cut points are fixed and ordered."""
    score = _clamp(score)
    for minimum, level, description in TRUST_LEVELS:
        if score >= minimum:
            return TrustInterpretation(level=level, description=description)
    _, level, description = TRUST_LEVELS[-1]
    return TrustInterpretation(level=level, description=description)


def aggregate_trust(scores) -> float:
    """Mean of the individual scores, 0 when nothing was retrieved."""
    scores = list(scores)
    if not scores:
        return 0.0
    return _clamp(sum(scores) / len(scores))


class TrustScorer:
    """Computes a [0, 1] trust score per resource or knowledge entry.

    Scores are never stored on the entities. URL sources are probed through
    the injected ``ReachabilityChecker``; when probing is disabled or the
    probe cannot tell, the source counts as neutral.
    """

    def __init__(
        self,
        checker: ReachabilityChecker | None = None,
        weights: dict[str, float] | None = None,
        now: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
        emergency_floor: float = EMERGENCY_TRUST_FLOOR,
    ):
        self.checker = checker or ReachabilityChecker(enabled=URL_PROBES_ENABLED)
        self.weights = dict(weights or KNOWLEDGE_TRUST_WEIGHTS)
        self.now = now
        self.emergency_floor = emergency_floor

    # ── Knowledge entries ──────────────────────────────────────────────────

    def verification_score(self, entry: KnowledgeEntry) -> float:
        score = VERIFICATION_SCORES.get(entry.verification_status, VERIFICATION_SCORES["pending"])
        if entry.community_validated:
            score += COMMUNITY_VALIDATION_BONUS
        return _clamp(score)

    def recency_score(self, entry: KnowledgeEntry) -> float:
        updated = entry.last_updated
        if updated.tzinfo is None:
            updated = updated.replace(tzinfo=timezone.utc)
        age_days = (self.now() - updated).total_seconds() / 86400
        for max_age, score in RECENCY_BANDS:
            if age_days <= max_age:
                return score
        return STALE_RECENCY_SCORE

    def source_status(self, source: str) -> tuple[float, bool]:
        """(quality, verified) for one cited source."""
        known = known_authority_score(source)
        if known is not None:
            return known, True
        if is_probeable_url(source):
            reachable = self.checker.check(source)
            if reachable is True:
                return REACHABLE_SOURCE_SCORE, True
            if reachable is False:
                return UNREACHABLE_SOURCE_SCORE, False
        return NEUTRAL_SOURCE_SCORE, False

    def source_score(self, entry: KnowledgeEntry) -> float:
        if not entry.sources:
            return 0.0
        qualities = [self.source_status(source)[0] for source in entry.sources]
        return sum(qualities) / len(qualities)

    def knowledge_score(self, entry: KnowledgeEntry) -> float:
        components = {
            "verification": self.verification_score(entry),
            "recency": self.recency_score(entry),
            "sources": self.source_score(entry),
        }
        total_weight = sum(max(self.weights.get(name, 0.0), 0.0) for name in components)
        if total_weight <= 0:
            return 0.0
        weighted = sum(max(self.weights.get(name, 0.0), 0.0) * value for name, value in components.items())
        return _clamp(weighted / total_weight)

    # ── Resources ──────────────────────────────────────────────────────────

    def resource_score(self, resource: Resource) -> float:
        score = RESOURCE_BASE_SCORE
        if resource.free_or_nhs:
            score += FREE_OR_NHS_BONUS

        competency = resource.cultural_competency
        for flag, bonus in CULTURAL_BONUSES.items():
            if getattr(competency, flag):
                score += bonus

        if resource.website:
            known = known_authority_score(resource.website)
            reachable = True if known is not None else self.checker.check(resource.website)
            if reachable is True:
                score += WEBSITE_REACHABLE_BONUS
            elif reachable is False:
                score -= WEBSITE_UNREACHABLE_PENALTY

        if resource.emergency:
            score = max(score, self.emergency_floor)
        return _clamp(score)

    # ── Batch helpers ──────────────────────────────────────────────────────

    def prefetch(self, resources: list[Resource], knowledge: list[KnowledgeEntry]) -> None:
        """Probe every candidate URL in one parallel batch so scoring reads the cache."""
        if not self.checker.enabled:
            return
        urls = [r.website for r in resources if r.website]
        urls.extend(source for entry in knowledge for source in entry.sources)
        pending = [url for url in urls if is_probeable_url(url) and known_authority_score(url) is None]
        if pending:
            self.checker.check_many(pending)

    def score_all(
        self, resources: list[Resource], knowledge: list[KnowledgeEntry]
    ) -> dict[str, float]:
        scores = {r.id: self.resource_score(r) for r in resources}
        scores.update({k.id: self.knowledge_score(k) for k in knowledge})
        return scores

    def verify_sources(self, knowledge: list[KnowledgeEntry]) -> SourceVerification:
        verified = 0
        total = 0
        for entry in knowledge:
            for source in entry.sources:
                total += 1
                if self.source_status(source)[1]:
                    verified += 1
        return SourceVerification(verified=verified, unverified=total - verified, total=total)


def trust_scorer_node(state: PipelineState, scorer: TrustScorer) -> dict:
    """Score every retrieved candidate and the aggregate used by the gate."""
    resources = state.get("resources", [])
    knowledge = state.get("knowledge", [])

    scorer.prefetch(resources, knowledge)
    scores = scorer.score_all(resources, knowledge)
    aggregate = aggregate_trust(scores.values())

    logger.debug("[Trust Scorer] OUTPUT: aggregate=%.3f scores=%s", aggregate, scores)
    return {"trust_scores": scores, "aggregate_trust": aggregate}
