"""Outcome of a reconcile step or pass."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ReconcileResult:
    """ReconcileResult tells the caller whether to go on with the pass.

    An empty result means "proceed to the next step". Anything else ends the
    current pass: ``requeue`` asks for an immediate new pass,
    ``requeue_after`` for one after a delay in seconds, and ``stop`` ends the
    pass without scheduling anything. Errors are raised, not returned.
    """

    requeue: bool = False
    requeue_after: float | None = None
    stop: bool = False
    # What happened, for logs and tests ("created", "updated", "deleted", ...)
    action: str = ""

    def __bool__(self) -> bool:
        return self.requeue or self.requeue_after is not None or self.stop

    @classmethod
    def proceed(cls) -> ReconcileResult:
        return cls()

    @classmethod
    def changed(cls, action: str) -> ReconcileResult:
        """A structural change was made; re-read state in a new pass."""
        return cls(requeue=True, action=action)

    @classmethod
    def after(cls, seconds: float, action: str = "") -> ReconcileResult:
        return cls(requeue_after=seconds, action=action)

    @classmethod
    def halt(cls, action: str = "") -> ReconcileResult:
        return cls(stop=True, action=action)
