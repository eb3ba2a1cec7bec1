import logging

from journey_backend.schemas import JourneyContext, KnowledgeEntry, Resource
from journey_backend.state import PipelineState
from journey_backend.tools.resource_store import ResourceStore
from journey_backend.tools.topics import Topic, detect_topic, topic_profile

logger = logging.getLogger(__name__)


def retrieve(
    store: ResourceStore, context: JourneyContext, topic: Topic
) -> tuple[list[Resource], list[KnowledgeEntry]]:
    """Topical resources and knowledge for a context.

    Crisis contexts always get the location's emergency resources in front,
    so safety resources reach the gate even when nothing topical matches.
    """
    profile = topic_profile(topic)

    resources: list[Resource] = []
    if profile.resource_category:
        resources = store.resources(
            context.stage, context.location, context.urgency_level, profile.resource_category
        )

    knowledge: list[KnowledgeEntry] = []
    if profile.knowledge_term:
        knowledge = store.knowledge(profile.knowledge_term, context.stage, context.location)

    if context.stage == "crisis":
        emergency = store.emergency_resources(context.location)
        seen = {r.id for r in emergency}
        resources = emergency + [r for r in resources if r.id not in seen]

    return resources, knowledge


def resource_retriever_node(state: PipelineState, store: ResourceStore) -> dict:
    """Query the catalogue for the classified context and detected topic."""
    context = state["journey_context"]
    topic = detect_topic(state.get("message", ""))

    resources, knowledge = retrieve(store, context, topic)

    logger.debug(
        "[Resource Retriever] OUTPUT: topic=%s resources=%s knowledge=%s",
        topic.value, [r.id for r in resources], [k.id for k in knowledge],
    )
    return {"topic": topic, "resources": resources, "knowledge": knowledge}
