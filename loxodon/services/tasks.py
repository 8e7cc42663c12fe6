"""Best-effort side effects executed after a primary write has committed."""
from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass

from sqlalchemy.orm import Session

from loxodon.obs.metrics import POST_COMMIT_FAILURE_COUNTER

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class PostCommitTask:
    """A named unit of follow-up work that may fail without failing the request."""

    name: str
    run: Callable[[Session], object]


@dataclass(slots=True, frozen=True)
class TaskOutcome:
    name: str
    succeeded: bool
    error: str | None = None


def run_post_commit(session: Session, tasks: Iterable[PostCommitTask]) -> list[TaskOutcome]:
    """Run each task in its own transaction, logging and continuing on failure.

    Tasks are independent: a failed task is rolled back and never retried, and
    the remaining tasks still run.
    """

    outcomes: list[TaskOutcome] = []
    for task in tasks:
        try:
            task.run(session)
            session.commit()
        except Exception as exc:
            session.rollback()
            logger.warning("post-commit task %s failed", task.name, exc_info=True)
            POST_COMMIT_FAILURE_COUNTER.labels(task=task.name).inc()
            outcomes.append(TaskOutcome(name=task.name, succeeded=False, error=str(exc)))
        else:
            outcomes.append(TaskOutcome(name=task.name, succeeded=True))
    return outcomes


__all__ = ["PostCommitTask", "TaskOutcome", "run_post_commit"]
