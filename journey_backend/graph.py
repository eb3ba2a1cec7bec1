from langgraph.graph import END, START, StateGraph

from journey_backend.agents.confidence_gate import (
    ConfidenceGate,
    confidence_gate_node,
    honest_limitation_node,
)
from journey_backend.agents.message_polisher import MessagePolisher, message_polisher_node
from journey_backend.agents.resource_retriever import resource_retriever_node
from journey_backend.agents.response_composer import ResponseComposer, response_composer_node
from journey_backend.agents.stage_classifier import StageClassifier, stage_classifier_node
from journey_backend.agents.trust_scorer import TrustScorer, trust_scorer_node
from journey_backend.state import PipelineState
from journey_backend.tools.resource_store import ResourceStore


def route_after_gate(state: PipelineState) -> str:
    """Compose a reply if the gate approved, otherwise answer honestly that we can't."""
    decision = state.get("gate_decision")
    if decision is not None and decision.should_respond:
        return "compose_response"
    return "honest_limitation"


def build_graph(
    classifier: StageClassifier,
    resource_store: ResourceStore,
    scorer: TrustScorer,
    gate: ConfidenceGate,
    composer: ResponseComposer,
    polisher: MessagePolisher,
):
    """Build and compile the per-message journey pipeline."""
    graph = StateGraph(PipelineState)

    graph.add_node("classify_stage", lambda state: stage_classifier_node(state, classifier))
    graph.add_node("retrieve_resources", lambda state: resource_retriever_node(state, resource_store))
    graph.add_node("score_trust", lambda state: trust_scorer_node(state, scorer))
    graph.add_node("confidence_gate", lambda state: confidence_gate_node(state, gate))
    graph.add_node("compose_response", lambda state: response_composer_node(state, composer))
    graph.add_node(
        "honest_limitation",
        lambda state: honest_limitation_node(state, resource_store, scorer),
    )
    graph.add_node("polish_message", lambda state: message_polisher_node(state, polisher))

    graph.add_edge(START, "classify_stage")
    graph.add_edge("classify_stage", "retrieve_resources")
    graph.add_edge("retrieve_resources", "score_trust")
    graph.add_edge("score_trust", "confidence_gate")

    # The gate is final: a refusal can only lead to the honest limitation reply
    graph.add_conditional_edges(
        "confidence_gate",
        route_after_gate,
        {
            "compose_response": "compose_response",
            "honest_limitation": "honest_limitation",
        },
    )

    graph.add_edge("compose_response", "polish_message")
    graph.add_edge("polish_message", END)
    graph.add_edge("honest_limitation", END)

    return graph.compile()
