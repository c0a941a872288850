"""Exceptions raised by the turn engine and its agents."""


class CivSimError(Exception):
    pass


class AgentError(CivSimError):
    """The agent backend failed: network error, bad status or unusable output."""


class AgentTimeoutError(AgentError):
    pass


class StateCorruptionError(CivSimError):
    def __init__(self, violations: list[str]):
        self.violations = violations
        super().__init__("Corrupt game state: " + "; ".join(violations))
