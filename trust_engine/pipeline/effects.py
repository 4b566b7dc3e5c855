"""
Trust Engine - Side-Effect Orchestrator

Post-commit effects run after the contribution row exists. Each effect is
an independent async callable; a failure in one is wrapped in
SideEffectError, logged with the effect name and contribution id, and
recorded in the report. Nothing an effect does can change the caller's
result or undo the write.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional, Sequence

from ..core.errors import SideEffectError
from ..core.logging import LogContext, Timer

logger = logging.getLogger(__name__)

EffectFn = Callable[[], Awaitable[None]]


@dataclass(frozen=True)
class Effect:
    """A named post-commit step."""

    name: str
    fn: EffectFn


@dataclass
class EffectReport:
    """What happened to each effect of one submission."""

    succeeded: list[str] = field(default_factory=list)
    failures: list[SideEffectError] = field(default_factory=list)

    @property
    def failed(self) -> list[str]:
        return [f.effect for f in self.failures]

    @property
    def all_succeeded(self) -> bool:
        return not self.failures


class EffectOrchestrator:
    """Runs effects in order, capturing every failure."""

    async def run(
        self,
        effects: Sequence[Effect],
        contribution_id: Optional[str] = None,
    ) -> EffectReport:
        report = EffectReport()

        for effect in effects:
            with LogContext(effect=effect.name, contribution_id=contribution_id):
                timer = Timer()
                try:
                    with timer:
                        await effect.fn()
                except Exception as e:
                    error = SideEffectError(effect.name, e)
                    report.failures.append(error)
                    logger.error(
                        "Side effect failed: effect=%s contribution_id=%s error=%s",
                        effect.name,
                        contribution_id,
                        error.message,
                        exc_info=True,
                        extra={
                            "effect": effect.name,
                            "contribution_id": contribution_id,
                            "error_code": error.error_code,
                            "duration_ms": timer.elapsed_ms,
                        },
                    )
                    continue

                report.succeeded.append(effect.name)
                logger.debug(
                    "Side effect completed: effect=%s",
                    effect.name,
                    extra={"effect": effect.name, "duration_ms": timer.elapsed_ms},
                )

        if report.failures:
            logger.warning(
                "Contribution %s saved with %d failed side effect(s): %s",
                contribution_id,
                len(report.failures),
                ", ".join(report.failed),
                extra={"contribution_id": contribution_id, "count": len(report.failures)},
            )
        return report
