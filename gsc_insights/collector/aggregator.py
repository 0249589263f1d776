"""
Partial-Failure Aggregation

Fans out to independent sub-queries (e.g. inspection, analytics, speed,
vitals), waits until every one has settled, and merges the outcomes into
one report. A failed section is recorded as failed; it never invalidates
the others and is never replaced by default values.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Generic, Iterable, List, Mapping, Optional, TypeVar

from .errors import ClassifiedError, ErrorKind, RequiredSectionFailed, classify_error

logger = logging.getLogger(__name__)

T = TypeVar("T")

SectionFn = Callable[[], Awaitable[Any]]

DEFAULT_CONCURRENCY = 4


class OutcomeStatus(Enum):
    """Settled state of one branch."""
    OK = "ok"
    FAILED = "failed"
    NOT_CONFIGURED = "not_configured"


@dataclass
class Outcome(Generic[T]):
    """Tagged result of one branch: payload on success, error otherwise."""
    status: OutcomeStatus
    payload: Optional[T] = None
    error: Optional[ClassifiedError] = None

    @property
    def ok(self) -> bool:
        return self.status == OutcomeStatus.OK

    @classmethod
    def success(cls, payload: T) -> "Outcome[T]":
        return cls(status=OutcomeStatus.OK, payload=payload)

    @classmethod
    def failure(cls, exc: BaseException) -> "Outcome[T]":
        error = classify_error(exc)
        if error.kind == ErrorKind.NOT_CONFIGURED:
            return cls(status=OutcomeStatus.NOT_CONFIGURED, error=error)
        return cls(status=OutcomeStatus.FAILED, error=error)

    @classmethod
    def not_configured(cls, reason: str) -> "Outcome[T]":
        return cls(
            status=OutcomeStatus.NOT_CONFIGURED,
            error=ClassifiedError(kind=ErrorKind.NOT_CONFIGURED, message=reason),
        )

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"status": self.status.value}
        if self.ok:
            payload = self.payload
            result["data"] = payload.to_dict() if hasattr(payload, "to_dict") else payload
        else:
            result["error"] = self.error.to_dict() if self.error else None
        return result


@dataclass
class BatchOutcome(Outcome[T]):
    """Outcome for one item of a batch; order matches input order."""
    item: Any = None

    def to_dict(self) -> Dict[str, Any]:
        return {"item": self.item, **super().to_dict()}


@dataclass
class AggregatedReport:
    """Section name -> Outcome. Every requested section is present."""
    sections: Dict[str, Outcome] = field(default_factory=dict)

    def __getitem__(self, name: str) -> Outcome:
        return self.sections[name]

    def __contains__(self, name: str) -> bool:
        return name in self.sections

    @property
    def succeeded(self) -> List[str]:
        return [n for n, o in self.sections.items() if o.status == OutcomeStatus.OK]

    @property
    def failed(self) -> List[str]:
        return [n for n, o in self.sections.items() if o.status == OutcomeStatus.FAILED]

    @property
    def not_configured(self) -> List[str]:
        return [n for n, o in self.sections.items() if o.status == OutcomeStatus.NOT_CONFIGURED]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sections": {name: o.to_dict() for name, o in self.sections.items()},
            "summary": {
                "succeeded": self.succeeded,
                "failed": self.failed,
                "not_configured": self.not_configured,
            },
        }


async def settle(fn: SectionFn) -> Outcome:
    """Run one branch and convert its result or failure into an Outcome."""
    try:
        return Outcome.success(await fn())
    except Exception as e:
        return Outcome.failure(e)


async def gather_sections(
    sections: Mapping[str, Optional[SectionFn]],
    concurrency: int = DEFAULT_CONCURRENCY,
    required: Iterable[str] = (),
) -> AggregatedReport:
    """
    Run independent sections concurrently and wait for all to settle.

    Args:
        sections: Ordered section name -> coroutine function, or None for
            a section whose capability is not configured
        concurrency: Maximum sections in flight at once
        required: Sections whose failure should raise

    Returns:
        AggregatedReport with one Outcome per requested section, in order

    Raises:
        RequiredSectionFailed: After all sections settled, if any required
            section FAILED (the full report is attached)
    """
    semaphore = asyncio.Semaphore(max(1, concurrency))

    async def run(name: str, fn: Optional[SectionFn]) -> Outcome:
        if fn is None:
            return Outcome.not_configured(f"{name} is not configured")
        async with semaphore:
            outcome = await settle(fn)
        if outcome.status == OutcomeStatus.FAILED:
            logger.warning(f"Section '{name}' failed: {outcome.error.message}")
        return outcome

    names = list(sections)
    outcomes = await asyncio.gather(*(run(name, sections[name]) for name in names))

    # Merge only after every branch has settled
    report = AggregatedReport(sections=dict(zip(names, outcomes)))
    logger.info(
        f"Report: {len(report.succeeded)} ok, {len(report.failed)} failed, "
        f"{len(report.not_configured)} not configured"
    )

    failed_required = [n for n in required if n in report.failed]
    if failed_required:
        raise RequiredSectionFailed(failed_required, report)
    return report
