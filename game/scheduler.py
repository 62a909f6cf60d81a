import heapq
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple


logger = logging.getLogger(__name__)


@dataclass(frozen=True, order=True)
class Timer:
    due_ms: int
    seq: int
    kind: str = field(compare=False)
    token: int = field(compare=False)
    generation: int = field(compare=False)


class TimerScheduler:
    """
    Все таймеры одной сессии.

    Каждый таймер помнит поколение (generation), в котором его поставили.
    cancel_all() увеличивает поколение, старые таймеры после этого
    считаются "протухшими" и никогда не доходят до машины состояний,
    даже если внешний цикл (pygame) всё ещё держит на них ссылку.
    """

    def __init__(self) -> None:
        self.generation: int = 0
        self._pending: List[Timer] = []
        self._seq: int = 0

    def schedule(self, kind: str, due_ms: int, token: int) -> Timer:
        self._seq += 1
        timer = Timer(due_ms=due_ms, seq=self._seq, kind=kind, token=token, generation=self.generation)
        heapq.heappush(self._pending, timer)
        return timer

    def is_live(self, timer: Timer) -> bool:
        return timer.generation == self.generation

    def pop_due(self, now_ms: int) -> Optional[Timer]:
        while self._pending and self._pending[0].due_ms <= now_ms:
            timer = heapq.heappop(self._pending)
            if self.is_live(timer):
                return timer
            logger.debug("dropping stale timer %s (generation %s != %s)", timer.kind, timer.generation, self.generation)
        return None

    def discard(self, timer: Timer) -> None:
        # таймер, доставленный снаружи, не должен сработать второй раз через pop_due
        if timer in self._pending:
            self._pending.remove(timer)
            heapq.heapify(self._pending)

    def cancel_all(self) -> None:
        self.generation += 1
        self._pending.clear()

    def pending(self) -> Tuple[Timer, ...]:
        return tuple(sorted(self._pending))

    def pending_count(self) -> int:
        return len(self._pending)

    def next_due_ms(self) -> Optional[int]:
        if not self._pending:
            return None
        return self._pending[0].due_ms
