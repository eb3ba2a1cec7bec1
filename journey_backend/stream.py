import logging
import uuid

from journey_backend.config import LOG_FORMAT, LOG_LEVEL
from journey_backend.orchestrator import ConversationOrchestrator
from journey_backend.schemas import ResponseEnvelope

EXIT_WORDS = {"quit", "exit", "bye"}


def configure_logging(level: str = LOG_LEVEL) -> None:
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
    # Keep HTTP client chatter out of the console
    for noisy in ("httpx", "httpcore", "openai", "urllib3"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def present_envelope(envelope: ResponseEnvelope) -> None:
    print(f"\n{'=' * 60}")
    print(f"Journey stage: {envelope.stage.replace('_', ' ')}  |  "
          f"Trust: {envelope.trust_level} ({envelope.trust_score:.2f})")
    print(f"{'=' * 60}")
    print(envelope.message)
    print(f"\n{envelope.next_stage_guidance}")
    if envelope.follow_up_required:
        print("\nWe'll check in with you again soon.")
    print(f"{'=' * 60}\n")


def ask_for_rating() -> int | None:
    raw = input("How helpful was this, from 1 to 5? (Enter to skip): ").strip()
    try:
        rating = int(raw)
    except ValueError:
        return None
    return rating if 1 <= rating <= 5 else None


def main() -> None:
    configure_logging()

    print("=" * 60)
    print("  Journey Support Assistant")
    print("=" * 60)
    location = input("\nWhere in the UK are you? (Enter to skip): ").strip() or None

    user_id = str(uuid.uuid4())
    session_id = str(uuid.uuid4())
    orchestrator = ConversationOrchestrator()

    try:
        while True:
            try:
                message = input("\nYou: ").strip()
            except EOFError:
                break
            if message.lower() in EXIT_WORDS:
                break
            if not message:
                continue

            envelope = orchestrator.generate_response(
                message, {"user_id": user_id, "location": location}, session_id
            )
            present_envelope(envelope)

            if envelope.request_feedback:
                rating = ask_for_rating()
                if rating is not None:
                    orchestrator.record_feedback(envelope.response_id, user_id, rating, helpful=rating >= 4)
    finally:
        orchestrator.close()

    print("\nTake care of yourself. Goodbye!")


if __name__ == "__main__":
    main()
