"""
Concurrent evaluation of many paths into one exposure set.

Paths are independent, so they are spread over a thread pool. Evolution
mutates market objects, therefore every worker thread lazily clones its own
evaluator. All workers write into the same exposure set, each path into its
own row, without locking.
"""

import logging
import threading
import time
from collections import Counter
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field

from ccr_core._types import ProgressCallback
from ccr_core.errors import PerCellValuationFailure
from ccr_core.exposure.evaluator import ExposurePathEvaluator, PathEvaluationResult
from ccr_core.exposure.sets import BaseExposureSet
from ccr_core.simulation.path import SimulatedPath

logger = logging.getLogger(__name__)


@dataclass
class RunResult:
    """
    Summary of one exposure run.

    Attributes
    ----------
    exposure_set_id : str
        Identifier of the populated set
    completed : list[int]
        Path indices whose rows were written, ascending
    skipped : list[int]
        Path indices not evaluated because the run was cancelled
    path_results : dict[int, PathEvaluationResult]
        Per-path outcome keyed by path index
    elapsed : float
        Wall-clock duration in seconds
    """

    exposure_set_id: str
    completed: list[int] = field(default_factory=list)
    skipped: list[int] = field(default_factory=list)
    path_results: dict[int, PathEvaluationResult] = field(default_factory=dict)
    elapsed: float = 0.0

    @property
    def failures(self) -> list[PerCellValuationFailure]:
        """All failed cells of the run, ordered by path index."""
        return [f for i in self.completed for f in self.path_results[i].failures]

    @property
    def cancelled(self) -> bool:
        """True if some paths were skipped."""
        return bool(self.skipped)

    def summary(self) -> dict[str, float]:
        """Counts of the run for reporting."""
        return {
            "completed": len(self.completed),
            "skipped": len(self.skipped),
            "failed_cells": len(self.failures),
            "defaulted_paths": sum(r.defaulted for r in self.path_results.values()),
            "elapsed_seconds": self.elapsed,
        }


class ExposureRunner:
    """
    Evaluates a batch of paths, optionally on several threads.

    Parameters
    ----------
    evaluator : ExposurePathEvaluator
        Template evaluator; used directly when running on one thread and
        cloned once per worker thread otherwise

    Example
    -------
    >>> runner = ExposureRunner(get_evaluator(market, pricers, dates, grid))
    >>> result = runner.run(paths, exposure_set, max_workers=4)
    >>> len(result.completed) == len(paths)
    True
    """

    def __init__(self, evaluator: ExposurePathEvaluator) -> None:
        self.evaluator = evaluator

    @staticmethod
    def _check_paths(paths: Sequence[SimulatedPath], exposure_set: BaseExposureSet) -> None:
        counts = Counter(path.index for path in paths)
        duplicates = sorted(i for i, n in counts.items() if n > 1)
        if duplicates:
            raise ValueError(f"Duplicate path indices in one run: {duplicates}")
        for path in paths:
            exposure_set.check_path(path.index)

    def run(
        self,
        paths: Sequence[SimulatedPath],
        exposure_set: BaseExposureSet,
        progress: ProgressCallback | None = None,
        cancel_event: threading.Event | None = None,
        max_workers: int = 1,
    ) -> RunResult:
        """
        Evaluate every path into its row of the exposure set.

        Parameters
        ----------
        paths : Sequence[SimulatedPath]
            Paths with distinct indices
        exposure_set : BaseExposureSet
            Destination shared by all workers
        progress : Callable[[int, int], None] | None
            Per-date progress callback; called from worker threads when
            max_workers > 1
        cancel_event : threading.Event | None
            Checked before each path; once set, paths not yet started are
            skipped and paths in progress complete their rows
        max_workers : int
            Number of worker threads (1 runs in the calling thread)

        Returns
        -------
        RunResult
            Completed and skipped path indices with per-path outcomes

        Raises
        ------
        ValueError
            If two paths share an index or max_workers < 1
        IndexOutOfRange
            If a path index is not a row of the exposure set
        """
        if max_workers < 1:
            raise ValueError(f"max_workers must be positive, got {max_workers}")
        self._check_paths(paths, exposure_set)

        logger.info(
            "Exposure run started: %d path(s) into '%s' on %d worker(s)",
            len(paths),
            exposure_set.id,
            max_workers,
        )
        start = time.perf_counter()

        if max_workers == 1:
            outcomes = [
                self._evaluate(self.evaluator, path, exposure_set, progress, cancel_event)
                for path in paths
            ]
        else:
            local = threading.local()

            def task(path: SimulatedPath) -> tuple[int, PathEvaluationResult | None]:
                evaluator = getattr(local, "evaluator", None)
                if evaluator is None:
                    evaluator = local.evaluator = self.evaluator.clone()
                return self._evaluate(evaluator, path, exposure_set, progress, cancel_event)

            with ThreadPoolExecutor(max_workers=max_workers) as executor:
                outcomes = list(executor.map(task, paths))

        result = RunResult(exposure_set_id=exposure_set.id)
        for index, outcome in sorted(outcomes, key=lambda item: item[0]):
            if outcome is None:
                result.skipped.append(index)
            else:
                result.completed.append(index)
                result.path_results[index] = outcome
        result.elapsed = time.perf_counter() - start

        logger.info(
            "Exposure run finished in %.2fs: %d completed, %d skipped, %d failed cell(s)",
            result.elapsed,
            len(result.completed),
            len(result.skipped),
            len(result.failures),
        )
        return result

    @staticmethod
    def _evaluate(
        evaluator: ExposurePathEvaluator,
        path: SimulatedPath,
        exposure_set: BaseExposureSet,
        progress: ProgressCallback | None,
        cancel_event: threading.Event | None,
    ) -> tuple[int, PathEvaluationResult | None]:
        if cancel_event is not None and cancel_event.is_set():
            return path.index, None
        return path.index, evaluator.evaluate_path(path, exposure_set, progress)
