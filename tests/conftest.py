"""
Shared fixtures for the journey pipeline tests.

Everything runs offline: URL probes are disabled, message polishing is off,
and the clock used for recency scoring is pinned.
"""

from datetime import datetime, timezone

import pytest

from journey_backend.agents.confidence_gate import ConfidenceGate
from journey_backend.agents.message_polisher import MessagePolisher
from journey_backend.agents.response_composer import ResponseComposer
from journey_backend.agents.stage_classifier import StageClassifier
from journey_backend.agents.trust_scorer import TrustScorer
from journey_backend.orchestrator import ConversationOrchestrator
from journey_backend.schemas import JourneyContext, KnowledgeEntry, Resource
from journey_backend.signals import load_signal_table
from journey_backend.tools.reachability import ReachabilityChecker
from journey_backend.tools.resource_store import ResourceStore

FIXED_NOW = datetime(2024, 3, 15, tzinfo=timezone.utc)


@pytest.fixture
def signal_table():
    return load_signal_table()


@pytest.fixture
def classifier(signal_table):
    return StageClassifier(signal_table)


@pytest.fixture
def store():
    return ResourceStore.from_json()


@pytest.fixture
def offline_checker():
    return ReachabilityChecker(enabled=False)


@pytest.fixture
def scorer(offline_checker):
    return TrustScorer(checker=offline_checker, now=lambda: FIXED_NOW)


@pytest.fixture
def gate(signal_table):
    return ConfidenceGate(signal_table)


@pytest.fixture
def composer(scorer):
    return ResponseComposer(scorer)


@pytest.fixture
def feedback_rows():
    return []


@pytest.fixture
def journey_rows():
    return []


@pytest.fixture
def orchestrator(classifier, store, scorer, gate, composer, feedback_rows, journey_rows):
    """Orchestrator wired to in-memory sinks instead of the CSV writers."""
    orch = ConversationOrchestrator(
        classifier=classifier,
        resource_store=store,
        scorer=scorer,
        gate=gate,
        composer=composer,
        polisher=MessagePolisher(enabled=False),
        feedback_sink=lambda **row: feedback_rows.append(row),
        analytics_sink=journey_rows.append,
    )
    yield orch
    orch.close()


def make_resource(**overrides) -> Resource:
    fields = {
        "id": "res",
        "title": "Test Service",
        "description": "A test service",
        "category": "Mental Health",
        "journey_stages": ["growth"],
        "locations": ["unknown"],
        "cost": "free",
    }
    fields.update(overrides)
    return Resource(**fields)


def make_knowledge(**overrides) -> KnowledgeEntry:
    fields = {
        "id": "kb",
        "title": "Test Article",
        "content": "Some verified content.",
        "category": "Mental Health",
        "journey_stages": ["growth"],
        "locations": ["unknown"],
        "tags": ["mental health"],
        "sources": ["NHS.uk"],
        "last_updated": FIXED_NOW,
        "verification_status": "verified",
    }
    fields.update(overrides)
    return KnowledgeEntry(**fields)


def make_context(**overrides) -> JourneyContext:
    fields = {
        "stage": "growth",
        "emotional_state": "calm",
        "urgency_level": "low",
        "location": "unknown",
        "community_connection": "exploring",
        "channel_preference": "flexible",
        "first_time": True,
        "returning_user": False,
    }
    fields.update(overrides)
    return JourneyContext(**fields)
