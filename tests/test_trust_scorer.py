"""Tests for trust scoring of resources and knowledge entries."""

from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from conftest import FIXED_NOW, make_knowledge, make_resource
from journey_backend.agents.trust_scorer import (
    TrustScorer,
    aggregate_trust,
    interpret,
    known_authority_score,
    trust_scorer_node,
)
from journey_backend.tools.reachability import ReachabilityCache, ReachabilityChecker

TIER_RANK = {"very_low": 0, "low": 1, "medium": 2, "high": 3}


def scorer_with_probe(result):
    checker = ReachabilityChecker(cache=ReachabilityCache(), probe=MagicMock(return_value=result))
    return TrustScorer(checker=checker, now=lambda: FIXED_NOW)


class TestInterpret:

    @pytest.mark.parametrize("score,level", [
        (1.0, "high"), (0.7, "high"), (0.69, "medium"), (0.5, "medium"),
        (0.49, "low"), (0.3, "low"), (0.29, "very_low"), (0.0, "very_low"),
    ])
    def test_cut_points(self, score, level):
        assert interpret(score).level == level

    def test_monotonic(self):
        scores = [i / 200 for i in range(201)]
        ranks = [TIER_RANK[interpret(s).level] for s in scores]
        assert ranks == sorted(ranks)

    def test_every_tier_has_a_description(self):
        for score in (0.1, 0.4, 0.6, 0.9):
            assert interpret(score).description

    def test_out_of_range_scores_are_clamped(self):
        assert interpret(7.0).level == "high"
        assert interpret(-1.0).level == "very_low"


class TestKnowledgeScore:

    def test_fresh_verified_official_entry_scores_one(self, scorer):
        assert scorer.knowledge_score(make_knowledge()) == pytest.approx(1.0)

    def test_neutral_entry(self, scorer):
        entry = make_knowledge(
            verification_status="pending",
            last_updated=FIXED_NOW - timedelta(days=100),
            sources=["Some Community Blog"],
        )
        assert scorer.knowledge_score(entry) == pytest.approx(0.5)

    def test_stale_outdated_entry_without_sources(self, scorer):
        entry = make_knowledge(
            verification_status="outdated",
            community_validated=True,
            last_updated=FIXED_NOW - timedelta(days=400),
            sources=[],
        )
        # 0.3 * (0.2 + 0.2) + 0.3 * 0.1 + 0.4 * 0
        assert scorer.knowledge_score(entry) == pytest.approx(0.15)

    def test_community_bonus_is_capped(self, scorer):
        assert scorer.verification_score(make_knowledge(community_validated=True)) == 1.0

    def test_recency_bands_decrease(self, scorer):
        ages = [0, 31, 91, 181, 366, 2000]
        scores = [scorer.recency_score(make_knowledge(last_updated=FIXED_NOW - timedelta(days=d))) for d in ages]
        assert scores == sorted(scores, reverse=True)
        assert scores[0] == 1.0 and scores[-1] == pytest.approx(0.1)

    def test_naive_timestamps_are_treated_as_utc(self, scorer):
        entry = make_knowledge(last_updated=FIXED_NOW.replace(tzinfo=None))
        assert scorer.recency_score(entry) == 1.0

    def test_unreachable_url_source_scores_zero(self):
        scorer = scorer_with_probe(False)
        assert scorer.source_status("https://dead.example/page") == (0.0, False)

    def test_reachable_url_source(self):
        scorer = scorer_with_probe(True)
        assert scorer.source_status("https://live.example/page") == (pytest.approx(0.6), True)

    def test_unknown_probe_result_is_neutral(self, scorer):
        assert scorer.source_status("https://live.example/page") == (0.5, False)

    def test_known_authorities_skip_the_probe(self):
        probe = MagicMock()
        scorer = TrustScorer(checker=ReachabilityChecker(probe=probe), now=lambda: FIXED_NOW)
        assert scorer.source_status("https://www.nhs.uk/conditions/hiv") == (1.0, True)
        probe.assert_not_called()

    def test_known_authority_tiers(self):
        assert known_authority_score("Gov.UK") == 1.0
        assert known_authority_score("Terrence Higgins Trust") == 0.8
        assert known_authority_score("https://www.ucl.ac.uk/research") == 0.7
        assert known_authority_score("Random Forum") is None

    @pytest.mark.parametrize("source", [
        "https://placas.example",
        "https://ehrc-news.example/report",
        "https://nhs.uk.evil.example/page",
        "https://evil.example/www.nhs.uk",
        "Acas fan forum",
    ])
    def test_lookalike_sources_are_not_authorities(self, source):
        assert known_authority_score(source) is None

    def test_authority_hosts_and_names(self):
        assert known_authority_score("https://www.acas.org.uk/advice") == 1.0
        assert known_authority_score("NHS.uk") == 1.0
        assert known_authority_score("EHRC") == 1.0
        assert known_authority_score("https://shelter.org.uk") == 0.8

    def test_lookalike_url_is_probed(self):
        probe = MagicMock(return_value=False)
        scorer = TrustScorer(checker=ReachabilityChecker(probe=probe), now=lambda: FIXED_NOW)
        assert scorer.source_status("https://placas.example") == (0.0, False)
        probe.assert_called_once_with("https://placas.example")

    @pytest.mark.parametrize("weights", [
        {"verification": 0.3, "recency": 0.3, "sources": 0.4},
        {"verification": 5.0, "recency": 0.0, "sources": 0.0},
        {"verification": 100, "recency": 200, "sources": 300},
        {"verification": -1.0, "recency": 2.0, "sources": 0.5},
        {"verification": 0, "recency": 0, "sources": 0},
        {},
    ])
    def test_score_is_bounded_for_any_weights(self, offline_checker, weights):
        scorer = TrustScorer(checker=offline_checker, weights=weights or {"unused": 1.0}, now=lambda: FIXED_NOW)
        entries = [
            make_knowledge(),
            make_knowledge(verification_status="outdated", sources=[], last_updated=FIXED_NOW - timedelta(days=900)),
            make_knowledge(community_validated=True, sources=["NHS.uk", "blog", "https://x.example"]),
        ]
        for entry in entries:
            assert 0.0 <= scorer.knowledge_score(entry) <= 1.0


class TestResourceScore:

    def test_free_generic_resource(self, scorer):
        assert scorer.resource_score(make_resource()) == pytest.approx(0.7)

    def test_paid_resource(self, scorer):
        assert scorer.resource_score(make_resource(cost="paid")) == pytest.approx(0.4)

    def test_cultural_competency_bonuses(self, scorer):
        resource = make_resource(
            cost="paid",
            cultural_competency={"black_specific": True, "lgbtq_specific": True, "trans_specific": True},
        )
        assert scorer.resource_score(resource) == pytest.approx(0.65)

    def test_score_is_clamped(self, scorer):
        resource = make_resource(
            website="https://www.nhs.uk/service",
            cultural_competency={"black_specific": True, "lgbtq_specific": True, "trans_specific": True},
        )
        assert scorer.resource_score(resource) == 1.0

    def test_emergency_floor(self, scorer):
        assert scorer.resource_score(make_resource(cost="paid", emergency=True)) == pytest.approx(0.8)

    def test_unreachable_website_is_penalised(self):
        scorer = scorer_with_probe(False)
        assert scorer.resource_score(make_resource(cost="paid", website="https://dead.example")) == pytest.approx(0.3)

    def test_catalogue_scores_are_bounded(self, scorer, store):
        for resource in store.all_resources:
            assert 0.0 <= scorer.resource_score(resource) <= 1.0
        for entry in store.all_knowledge:
            assert 0.0 <= scorer.knowledge_score(entry) <= 1.0

    def test_catalogue_emergency_resources_clear_the_gate(self, scorer, store):
        for resource in store.emergency_resources("unknown"):
            assert scorer.resource_score(resource) >= 0.8


class TestAggregationAndVerification:

    def test_aggregate_is_mean(self):
        assert aggregate_trust([0.2, 0.4, 0.9]) == pytest.approx(0.5)

    def test_aggregate_of_nothing_is_zero(self):
        assert aggregate_trust([]) == 0.0

    def test_source_verification_counts(self):
        scorer = scorer_with_probe(False)
        summary = scorer.verify_sources([
            make_knowledge(sources=["NHS.uk", "https://dead.example"]),
            make_knowledge(id="kb2", sources=["Some Blog"]),
        ])
        assert (summary.verified, summary.unverified, summary.total) == (1, 2, 3)

    def test_node_scores_every_candidate(self, scorer):
        update = trust_scorer_node(
            {"resources": [make_resource(id="r1")], "knowledge": [make_knowledge(id="k1")]},
            scorer,
        )
        assert set(update["trust_scores"]) == {"r1", "k1"}
        assert update["aggregate_trust"] == pytest.approx((0.7 + 1.0) / 2)

    def test_node_with_nothing_retrieved(self, scorer):
        assert trust_scorer_node({}, scorer) == {"trust_scores": {}, "aggregate_trust": 0.0}

    def test_node_probes_each_url_once_in_a_batch(self):
        probe = MagicMock(return_value=True)
        checker = ReachabilityChecker(cache=ReachabilityCache(), probe=probe, concurrency=4)
        scorer = TrustScorer(checker=checker, now=lambda: FIXED_NOW)
        trust_scorer_node(
            {
                "resources": [make_resource(id="r1", website="https://a.example")],
                "knowledge": [make_knowledge(id="k1", sources=["https://b.example", "https://a.example", "NHS.uk"])],
            },
            scorer,
        )
        assert sorted(call.args[0] for call in probe.call_args_list) == ["https://a.example", "https://b.example"]

    def test_prefetch_is_skipped_when_probes_are_disabled(self):
        probe = MagicMock()
        scorer = TrustScorer(checker=ReachabilityChecker(probe=probe, enabled=False), now=lambda: FIXED_NOW)
        scorer.prefetch([make_resource(website="https://a.example")], [])
        probe.assert_not_called()
