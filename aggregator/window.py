"""Windowed hit aggregation over a trailing span of integer-second timestamps.

Keeps an ordered log of hits together with three aggregates derived from
it: the total, per-group counts and per-group per-user counts.  Every
public call first evicts hits that have fallen out of the window relative
to its own timestamp, so time only moves through the arguments callers
pass in.  There is no background clock.

Deque-based: O(1) append, amortized O(1) eviction.

Hits must be recorded with non-decreasing timestamps.  Eviction only pops
from the front of the log, so a hit recorded out of order is kept until
everything recorded before it has been evicted.
"""

from collections import deque
from dataclasses import dataclass

DEFAULT_WINDOW_SECONDS = 60


@dataclass(frozen=True)
class Hit:
    ts: int
    group: str
    user: str | None = None


class WindowedAggregator:
    __slots__ = ("window_seconds", "_log", "_total", "_group_counts", "_group_users")

    def __init__(self, window_seconds: int = DEFAULT_WINDOW_SECONDS):
        if window_seconds < 1:
            raise ValueError(f"window_seconds must be >= 1, got {window_seconds}")
        self.window_seconds = window_seconds
        self._log: deque[Hit] = deque()
        self._total = 0
        self._group_counts: dict[str, int] = {}
        # Only hits that carried a user are counted here.
        self._group_users: dict[str, dict[str, int]] = {}

    def record(self, ts: int, group: str, user: str | None = None) -> None:
        """Evict at *ts*, then append a hit and bump every aggregate it touches."""
        self._evict(ts)
        self._log.append(Hit(ts, group, user))
        self._total += 1
        self._group_counts[group] = self._group_counts.get(group, 0) + 1
        if user is not None:
            users = self._group_users.setdefault(group, {})
            users[user] = users.get(user, 0) + 1

    def query_total(self, ts: int) -> int:
        self._evict(ts)
        return self._total

    def query_group(self, ts: int, group: str) -> int:
        self._evict(ts)
        return self._group_counts.get(group, 0)

    def query_users(self, ts: int, group: str) -> dict[str, int]:
        """Return the per-user breakdown of *group*, ascending by user.

        The dict is a fresh copy; mutating it does not touch the aggregator.
        Groups with no user-tagged hits in the window give an empty dict.
        """
        self._evict(ts)
        users = self._group_users.get(group)
        if not users:
            return {}
        return {user: users[user] for user in sorted(users)}

    def window_start(self, ts: int) -> int:
        """Oldest timestamp still inside the window at *ts*."""
        return ts - self.window_seconds + 1

    def _evict(self, now: int) -> None:
        cutoff = self.window_start(now)
        while self._log and self._log[0].ts < cutoff:
            hit = self._log.popleft()
            self._total -= 1
            _decrement(self._group_counts, hit.group)
            if hit.user is not None:
                users = self._group_users[hit.group]
                _decrement(users, hit.user)
                if not users:
                    del self._group_users[hit.group]

    def __len__(self) -> int:
        return len(self._log)


def _decrement(counts: dict[str, int], key: str) -> None:
    # Zero is represented by absence, never by a stored 0.
    remaining = counts[key] - 1
    if remaining:
        counts[key] = remaining
    else:
        del counts[key]
