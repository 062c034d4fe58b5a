import logging
import threading
from dataclasses import dataclass
from typing import Callable, Iterable, Optional

from hypeflow.config import Settings
from hypeflow.exec.pipeline import ExecutionOutcome, ExecutionPipeline
from hypeflow.feedback import compose_feedback, post_feedback
from hypeflow.ingest.aggregate import ScoredItem, observe
from hypeflow.strategy.decision import decide
from hypeflow.strategy.freshness import adjust_for_age
from hypeflow.types import Action, Decision, InvestmentState, SentimentObservation

logger = logging.getLogger("hypeflow.agent")


@dataclass
class CycleReport:
    state: InvestmentState
    observation: Optional[SentimentObservation] = None
    decision: Optional[Decision] = None
    outcome: Optional[ExecutionOutcome] = None
    error: str = ""

    @property
    def ok(self) -> bool:
        return not self.error and (self.outcome is None or self.outcome.ok)


def run_cycle(
    items: Iterable[ScoredItem],
    state: InvestmentState,
    *,
    settings: Settings,
    pipeline: ExecutionPipeline,
    feedback: Callable[[str], object] = post_feedback,
    now: Optional[float] = None,
) -> CycleReport:
    """One decision cycle: observe, decide, adjust for age, execute, report.

    Returns the investment state for the next cycle. Nothing raised in here
    reaches the scheduler.
    """
    report = CycleReport(state=state)
    try:
        obs = observe(items, now=now, weighted=settings.weighted_sentiment)
        report.observation = obs
        logger.info(
            f"[cycle] sentiment={obs.score:.4f} samples={obs.sample_count} "
            f"age={obs.observed_at_age_minutes:.1f}m"
        )

        decision = decide(obs.score, obs.sample_count, settings.decision_config(state.invested))
        decision = adjust_for_age(
            decision, obs.observed_at_age_minutes, settings.max_data_age_minutes
        )
        report.decision = decision
        logger.info(f"[cycle] decision {decision.action.value} (confidence {decision.confidence:.2f})")
        logger.info(f"[cycle] reason: {decision.rationale}")

        outcome = pipeline.run(
            decision.action,
            decision.suggested_amount,
            decision.confidence,
            state,
            sample_count=obs.sample_count,
        )
        report.outcome = outcome
        report.state = outcome.state
    except Exception as e:
        logger.exception(f"[cycle] error running cycle: {e}")
        report.error = str(e)
        return report

    if outcome.ok and decision.action != Action.HOLD:
        try:
            feedback(
                compose_feedback(
                    decision.action, decision.suggested_amount, decision.confidence
                )
            )
        except Exception as e:
            logger.error(f"[cycle] feedback failed: {e}")
    elif not outcome.ok:
        logger.warning(
            f"[cycle] execution failed ({outcome.kind.value if outcome.kind else 'unknown'}), "
            f"waiting for next cycle"
        )
    return report


class CycleRunner:
    """Owns the investment state and makes sure cycles never overlap."""

    def __init__(
        self,
        pipeline: ExecutionPipeline,
        settings: Settings,
        source: Callable[[], Iterable[ScoredItem]],
        feedback: Callable[[str], object] = post_feedback,
    ):
        self.pipeline = pipeline
        self.settings = settings
        self.source = source
        self.feedback = feedback
        self.state = pipeline.state
        self.cycles = 0
        self.skipped = 0
        self._lock = threading.Lock()

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    def trigger(self, items: Optional[Iterable[ScoredItem]] = None) -> Optional[CycleReport]:
        """Run one cycle now; returns None when a cycle is already running."""
        if not self._lock.acquire(blocking=False):
            self.skipped += 1
            logger.warning("[cycle] previous cycle still running, skipping tick")
            return None
        try:
            logger.info("[cycle] starting run")
            if items is None:
                try:
                    items = list(self.source())
                except Exception as e:
                    logger.error(f"[cycle] item source failed: {e}")
                    items = []
            report = run_cycle(
                items,
                self.state,
                settings=self.settings,
                pipeline=self.pipeline,
                feedback=self.feedback,
            )
            self.state = report.state
            self.pipeline.state = report.state
            self.cycles += 1
            logger.info("[cycle] run complete")
            return report
        finally:
            self._lock.release()
