import threading
from collections import OrderedDict, deque

from journey_backend.config import HISTORY_MAX_STAGES, HISTORY_MAX_USERS


class JourneyHistory:
    """Per-user stage history, oldest first.

    Each user keeps at most ``max_stages`` stages (a ring buffer) and at most
    ``max_users`` users are tracked; the least recently active user is evicted
    first. Appends for the same user are serialised so none are lost.
    """

    def __init__(self, max_stages: int = HISTORY_MAX_STAGES, max_users: int = HISTORY_MAX_USERS):
        self.max_stages = max_stages
        self.max_users = max_users
        self._users: OrderedDict[str, deque] = OrderedDict()
        self._lock = threading.Lock()

    def stages(self, user_id: str) -> tuple[str, ...]:
        with self._lock:
            history = self._users.get(user_id)
            return tuple(history) if history is not None else ()

    def append(self, user_id: str, stage: str) -> None:
        with self._lock:
            history = self._users.get(user_id)
            if history is None:
                history = deque(maxlen=self.max_stages)
                self._users[user_id] = history
            history.append(stage)
            self._users.move_to_end(user_id)
            while len(self._users) > self.max_users:
                self._users.popitem(last=False)

    def __contains__(self, user_id: object) -> bool:
        with self._lock:
            return user_id in self._users

    def __len__(self) -> int:
        with self._lock:
            return len(self._users)
