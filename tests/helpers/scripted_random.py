"""Deterministic stand-in for random.Random used by the engine tests."""


class ScriptedRandom:
    """Replays queued draws; once a queue runs dry it rolls the range minimum and never crits."""

    def __init__(self, ints=None, floats=None) -> None:
        self.ints = list(ints or [])
        self.floats = list(floats or [])

    def randint(self, a: int, b: int) -> int:
        if self.ints:
            value = self.ints.pop(0)
            assert a <= value <= b, f"scripted {value} outside [{a}, {b}]"
            return value
        return a

    def random(self) -> float:
        if self.floats:
            return self.floats.pop(0)
        return 0.99
