"""
Explicit per-call context for engine operations.

Replaces any notion of an ambient "current user": the caller resolves the
acting user (or none) and passes it in, together with the clock and random
source, so expiry and code generation stay deterministic under test.
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable

from .time_utils import utcnow


@dataclass
class EngineContext:
    user: object | None = None  # models.User of the actor, if authenticated
    clock: Callable[[], datetime] = utcnow
    rng: random.Random = field(default_factory=random.SystemRandom)

    def now(self) -> datetime:
        return self.clock()

    def for_user(self, user) -> "EngineContext":
        return EngineContext(user=user, clock=self.clock, rng=self.rng)


def resolve(ctx: EngineContext | None) -> EngineContext:
    return ctx if ctx is not None else EngineContext()
