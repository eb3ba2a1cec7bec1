"""Topic lookup table.

Each topic carries everything keyed on it in one place: the words that detect
it, the terms used to query the catalogue, and the named authoritative
sources offered when the assistant cannot answer.
"""
from dataclasses import dataclass
from enum import Enum

from journey_backend.schemas import SuggestedSource
from journey_backend.signals import contains_term, normalise


class Topic(str, Enum):
    SEXUAL_HEALTH = "sexual_health"
    MENTAL_HEALTH = "mental_health"
    HOUSING = "housing"
    LEGAL_RIGHTS = "legal_rights"
    COMMUNITY = "community"
    GENERAL = "general"


@dataclass(frozen=True)
class TopicProfile:
    label: str
    keywords: tuple[str, ...]
    resource_category: str | None
    knowledge_term: str | None
    suggested_sources: tuple[SuggestedSource, ...]


def _sources(*pairs: tuple[str, str]) -> tuple[SuggestedSource, ...]:
    return tuple(SuggestedSource(name=name, description=description) for name, description in pairs)


TOPIC_TABLE: dict[Topic, TopicProfile] = {
    Topic.SEXUAL_HEALTH: TopicProfile(
        label="sexual health",
        keywords=("hiv", "prep", "pep", "sti", "stis", "sexual health", "testing", "u=u"),
        resource_category="sexual health",
        knowledge_term="sexual health",
        suggested_sources=_sources(
            ("NHS Sexual Health Services", "Free, confidential sexual health testing and treatment"),
            ("menrus.co.uk", "Sexual health resources specifically for Black gay men"),
            ("Terrence Higgins Trust", "HIV and sexual health support and information"),
        ),
    ),
    Topic.MENTAL_HEALTH: TopicProfile(
        label="mental health",
        keywords=("mental health", "therapy", "therapist", "counselling", "depression",
                  "depressed", "anxiety", "suicidal"),
        resource_category="mental health",
        knowledge_term="mental health",
        suggested_sources=_sources(
            ("NHS Talking Therapies", "Free NHS therapy for anxiety and depression - self-referral available"),
            ("Mind.org.uk", "Mental health information and local services directory"),
            ("Your GP", "First point of contact for NHS mental health services"),
        ),
    ),
    Topic.HOUSING: TopicProfile(
        label="housing",
        keywords=("housing", "homeless", "evicted", "eviction", "rent", "landlord", "accommodation"),
        resource_category="housing",
        knowledge_term="housing",
        suggested_sources=_sources(
            ("Shelter", "Housing advice helpline: 0808 800 4444"),
            ("Local Council Housing Team", "Statutory housing support and emergency accommodation"),
            ("Citizens Advice", "Free housing and legal advice"),
        ),
    ),
    Topic.LEGAL_RIGHTS: TopicProfile(
        label="legal rights",
        keywords=("discrimination", "rights", "legal", "employment", "tribunal", "harassment"),
        resource_category="legal",
        knowledge_term="legal rights",
        suggested_sources=_sources(
            ("ACAS", "Employment law advice: 0300 123 1100"),
            ("Equality and Human Rights Commission", "Discrimination and equality law guidance"),
            ("Citizens Advice", "Free legal advice and support"),
        ),
    ),
    Topic.COMMUNITY: TopicProfile(
        label="community support",
        keywords=("community", "group", "events", "pride", "support group", "peers", "peer support"),
        resource_category="community",
        knowledge_term="community",
        suggested_sources=_sources(
            ("UK Black Pride", "Community events and support for LGBTQ+ people of colour"),
            ("Local LGBTQ+ Centres", "Community support groups and services in your area"),
            ("LGBT+ Switchboard", "Information and support: 0300 330 0630"),
        ),
    ),
    Topic.GENERAL: TopicProfile(
        label="general support",
        keywords=(),
        resource_category=None,
        knowledge_term=None,
        suggested_sources=_sources(
            ("NHS.uk", "Verified health and social care information"),
            ("Gov.UK", "Official government services and information"),
            ("Citizens Advice", "Free, independent advice on your rights"),
        ),
    ),
}


def detect_topic(message: object) -> Topic:
    """First topic, in table order, with a keyword in the message."""
    text = normalise(message)
    for topic, profile in TOPIC_TABLE.items():
        if any(contains_term(text, keyword) for keyword in profile.keywords):
            return topic
    return Topic.GENERAL


def topic_profile(topic: Topic) -> TopicProfile:
    return TOPIC_TABLE[topic]
