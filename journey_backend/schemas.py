from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

JourneyStage = Literal["crisis", "stabilization", "growth", "community_healing", "advocacy"]
EmotionalState = Literal[
    "crisis", "stressed", "overwhelmed", "uncertain", "calm", "hopeful", "excited", "joyful"
]
UrgencyLevel = Literal["emergency", "high", "medium", "low"]
CommunityConnection = Literal["isolated", "exploring", "connected", "networked", "organizing"]
ChannelPreference = Literal["phone", "online", "in_person", "flexible"]
UKLocation = Literal[
    "london", "manchester", "birmingham", "leeds", "glasgow", "cardiff", "belfast",
    "bristol", "liverpool", "sheffield", "nottingham", "brighton",
    "other_urban", "rural", "unknown",
]
CostTier = Literal["free", "nhs_funded", "sliding_scale", "paid"]
VerificationStatus = Literal["verified", "pending", "outdated"]
TrustLevel = Literal["high", "medium", "low", "very_low"]
ConfidenceLevel = Literal["high", "medium", "low", "insufficient"]
EnvelopeSource = Literal["journey_pipeline", "honest_limitation", "fallback"]

# Canonical ordering, earliest first
STAGE_ORDER: tuple[str, ...] = (
    "crisis", "stabilization", "growth", "community_healing", "advocacy",
)


class JourneyContext(BaseModel):
    """Where the person is in their support journey, derived from one message."""
    model_config = ConfigDict(frozen=True)

    stage: JourneyStage
    emotional_state: EmotionalState
    urgency_level: UrgencyLevel
    location: UKLocation
    community_connection: CommunityConnection
    channel_preference: ChannelPreference
    first_time: bool
    returning_user: bool
    previous_stages: tuple[JourneyStage, ...] = ()
    stage_scores: dict[str, float] = Field(default_factory=dict)
    emergency_detected: bool = False


class CulturalCompetency(BaseModel):
    lgbtq_specific: bool = False
    black_specific: bool = False
    trans_specific: bool = False
    disability_aware: bool = False

    @property
    def identity_specific(self) -> bool:
        return self.black_specific or self.trans_specific


class Resource(BaseModel):
    """A support service listing from the catalogue."""
    id: str
    title: str
    description: str
    category: str
    journey_stages: list[JourneyStage]
    locations: list[UKLocation]
    cost: CostTier
    emergency: bool = False
    availability: str = ""
    languages: list[str] = Field(default_factory=lambda: ["English"])
    phone: str | None = None
    website: str | None = None
    specializations: list[str] = Field(default_factory=list)
    cultural_competency: CulturalCompetency = Field(default_factory=CulturalCompetency)

    @property
    def culturally_specific(self) -> bool:
        competency = self.cultural_competency
        return competency.identity_specific or competency.lgbtq_specific

    @property
    def free_or_nhs(self) -> bool:
        return self.cost in ("free", "nhs_funded")


class KnowledgeEntry(BaseModel):
    """A verified explanatory article with its cited sources."""
    id: str
    title: str
    content: str
    category: str
    journey_stages: list[JourneyStage]
    locations: list[UKLocation]
    tags: list[str] = Field(default_factory=list)
    sources: list[str] = Field(default_factory=list)
    last_updated: datetime
    verification_status: VerificationStatus
    community_validated: bool = False


class Catalogue(BaseModel):
    version: str
    resources: list[Resource]
    knowledge: list[KnowledgeEntry]


class SourceVerification(BaseModel):
    verified: int = 0
    unverified: int = 0
    total: int = 0


class TrustInterpretation(BaseModel):
    level: TrustLevel
    description: str


class GateDecision(BaseModel):
    """Outcome of the confidence gate for one message."""
    model_config = ConfigDict(frozen=True)

    should_respond: bool
    confidence_level: ConfidenceLevel
    reason: str


class SuggestedSource(BaseModel):
    name: str
    description: str


class ResponseEnvelope(BaseModel):
    """The reply handed back to the calling API layer."""
    model_config = ConfigDict(frozen=True)

    response_id: str
    message: str
    stage: JourneyStage
    next_stage_guidance: str
    resources: list[Resource] = Field(default_factory=list)
    knowledge: list[KnowledgeEntry] = Field(default_factory=list)
    follow_up_required: bool = False
    culturally_affirming: bool = False
    specific_information: bool = False
    trust_score: float = Field(default=0.0, ge=0.0, le=1.0)
    trust_level: TrustLevel = "very_low"
    trust_description: str = ""
    source_verification: SourceVerification = Field(default_factory=SourceVerification)
    request_feedback: bool = False
    confidence_level: ConfidenceLevel | Literal["error"] = "insufficient"
    source: EnvelopeSource = "journey_pipeline"
    journey_context: JourneyContext | None = None


class PolishedMessage(BaseModel):
    """The free-form generator rephrases an approved message."""
    message: str
