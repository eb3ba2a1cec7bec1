import logging
import time
from typing import Callable

from langchain_core.messages import HumanMessage, SystemMessage
from langchain_openai import ChatOpenAI
from openai import APIConnectionError, APITimeoutError, RateLimitError

from journey_backend.config import (
    AGENT_MODELS,
    MAX_POLISH_RETRIES,
    POLISH_ENABLED,
    POLISH_RETRY_DELAYS,
)
from journey_backend.prompts import POLISH_MESSAGE_PROMPT
from journey_backend.schemas import PolishedMessage, ResponseEnvelope
from journey_backend.state import PipelineState

logger = logging.getLogger(__name__)


class MessagePolisher:
    """Optional rephrasing of an approved reply by a chat model.

    Only the message text can change. Stage, resources, knowledge and the
    gate outcome are copied from the approved envelope untouched, and crisis
    replies are never sent to the model so the safety lines stay verbatim.
    """

    def __init__(
        self,
        llm=None,
        enabled: bool = POLISH_ENABLED,
        max_retries: int = MAX_POLISH_RETRIES,
        retry_delays: list[int] = POLISH_RETRY_DELAYS,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._llm = llm
        self.enabled = enabled
        self.max_retries = max_retries
        self.retry_delays = retry_delays
        self.sleep = sleep

    @property
    def structured_llm(self):
        if self._llm is None:
            llm = ChatOpenAI(model=AGENT_MODELS["message_polisher"])
            self._llm = llm.with_structured_output(PolishedMessage, strict=True)
        return self._llm

    def polish(self, envelope: ResponseEnvelope) -> ResponseEnvelope:
        if not self.enabled or envelope.stage == "crisis":
            return envelope

        messages = [
            SystemMessage(content=POLISH_MESSAGE_PROMPT),
            HumanMessage(content=f"Journey stage: {envelope.stage}\n\nApproved reply:\n{envelope.message}"),
        ]
        logger.debug("[Message Polisher] INPUT: %s", envelope.message)

        polished = None
        for attempt in range(self.max_retries):
            try:
                polished = self.structured_llm.invoke(messages)
                break
            except (APIConnectionError, APITimeoutError, RateLimitError) as e:
                if attempt < self.max_retries - 1:
                    logger.warning("LLM call failed (attempt %d), retrying: %s", attempt + 1, e)
                    self.sleep(self.retry_delays[min(attempt, len(self.retry_delays) - 1)])
                else:
                    logger.warning("LLM call failed after %d attempts: %s", self.max_retries, e)
            except Exception as e:
                logger.warning("Unexpected LLM error: %s", e)
                break

        if polished is None or not polished.message.strip():
            return envelope

        logger.debug("[Message Polisher] OUTPUT: %s", polished.message)
        return envelope.model_copy(update={"message": polished.message})


def message_polisher_node(state: PipelineState, polisher: MessagePolisher) -> dict:
    return {"envelope": polisher.polish(state["envelope"])}
