from datetime import datetime, timedelta, timezone


class FakeClock:
    """Clock that only moves when told to."""

    def __init__(self):
        self.now = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += timedelta(seconds=seconds)


class ManualHandle:
    def __init__(self, delay_ms, event):
        self.delay_ms = delay_ms
        self.event = event
        self.cancelled = False

    def cancel(self):
        self.cancelled = True
        return True

    def done(self):
        return self.cancelled


class ManualScheduler:
    """Records scheduled events; tests fire them by hand."""

    def __init__(self):
        self.handles = []

    def schedule(self, delay_ms, event):
        handle = ManualHandle(delay_ms, event)
        self.handles.append(handle)
        return handle

    @property
    def scheduled(self):
        """(delay_ms, event) of everything not cancelled."""
        return [(handle.delay_ms, handle.event) for handle in self.handles if not handle.cancelled]


def pairs_of(solution):
    """Map each pair id to its two positions."""
    found = {}
    for pos, pair_id in sorted(solution.items()):
        found.setdefault(pair_id, []).append(pos)
    return found


def mismatched(solution):
    """Two positions holding different pair ids."""
    positions = sorted(solution)
    first = positions[0]
    second = next(pos for pos in positions if solution[pos] != solution[first])
    return first, second
