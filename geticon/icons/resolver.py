"""Fallback controller: walk ranked candidates until one validates"""

import asyncio
import hashlib
import logging
from enum import Enum, unique
from typing import Mapping, NamedTuple, Optional

import aiodogstatsd

from geticon.exceptions import FetchError, InternalInconsistency, InvalidImageContent
from geticon.icons.discovery import CandidateDiscovery
from geticon.icons.fetcher import IconFetcher
from geticon.icons.models import (
    IconCandidate,
    IconMetadata,
    ResolutionResult,
    SiteReference,
    ValidatedIcon,
)
from geticon.icons.scorer import IconScorer
from geticon.icons.validator import ContentValidator

logger = logging.getLogger(__name__)


@unique
class ResolutionState(str, Enum):
    """Stages a single resolution moves through."""

    DISCOVERING = "discovering"
    VALIDATING = "validating"
    SCORED = "scored"
    SUCCEEDED = "succeeded"
    EXHAUSTED = "exhausted"


TRANSITIONS: dict[ResolutionState, frozenset[ResolutionState]] = {
    ResolutionState.DISCOVERING: frozenset(
        {ResolutionState.VALIDATING, ResolutionState.EXHAUSTED}
    ),
    ResolutionState.VALIDATING: frozenset(
        {ResolutionState.VALIDATING, ResolutionState.SCORED, ResolutionState.EXHAUSTED}
    ),
    ResolutionState.SCORED: frozenset({ResolutionState.SUCCEEDED}),
    ResolutionState.SUCCEEDED: frozenset(),
    ResolutionState.EXHAUSTED: frozenset(),
}


class CandidateFailure(NamedTuple):
    """Why a candidate could not be used."""

    candidate: IconCandidate
    error: FetchError | InvalidImageContent


def content_hash(content: bytes) -> str:
    """Return the hex SHA-256 digest used as the entity tag of an icon payload."""
    return hashlib.sha256(content).hexdigest()


class IconResolver:
    """Resolve the best icon for a site by trying candidates in rank order.

    Candidates are fetched in concurrent batches, but the winner always comes
    from the highest-ranked candidates that validate, regardless of which fetch
    finished first or where the batches split.
    """

    discovery: CandidateDiscovery
    fetcher: IconFetcher
    validator: ContentValidator
    scorer: IconScorer
    batch_size: int
    metrics_client: aiodogstatsd.Client

    def __init__(
        self,
        discovery: CandidateDiscovery,
        fetcher: IconFetcher,
        validator: ContentValidator,
        scorer: IconScorer,
        batch_size: int,
        metrics_client: aiodogstatsd.Client,
    ) -> None:
        self.discovery = discovery
        self.fetcher = fetcher
        self.validator = validator
        self.scorer = scorer
        self.batch_size = batch_size
        self.metrics_client = metrics_client

    async def resolve(
        self,
        site: SiteReference,
        size: Optional[int] = None,
        forwarded_headers: Optional[Mapping[str, str]] = None,
    ) -> ResolutionResult:
        """Resolve the best icon for `site`.

        The winner is chosen among the first candidates in rank order that
        validate and share the same provisional rank, so neither the batch size
        nor failures of better ranked candidates change the result. Every
        candidate ranked below the first success is reported as a metadata-only
        alternate.

        Returns a result with `best` set to `None` when every candidate failed.
        Per-candidate fetch and validation errors are recorded, never raised.

        Raises:
            InternalInconsistency: if the resolution reaches an impossible state.
        """
        state = ResolutionState.DISCOVERING
        candidates = await self.discovery.discover(site, forwarded_headers)
        ranked = self.scorer.rank_candidates(candidates, size)

        # Outcomes line up with `ranked` because gather preserves argument order.
        outcomes: list[ValidatedIcon | CandidateFailure] = []
        first_success: Optional[int] = None
        while first_success is None and len(outcomes) < len(ranked):
            state = self._transition(site, state, ResolutionState.VALIDATING)
            batch = ranked[len(outcomes) : len(outcomes) + self.batch_size]
            outcomes.extend(await self._try_batch(batch, forwarded_headers))
            first_success = next(
                (
                    index
                    for index, outcome in enumerate(outcomes)
                    if isinstance(outcome, ValidatedIcon)
                ),
                None,
            )

        failures = [outcome for outcome in outcomes if isinstance(outcome, CandidateFailure)]
        if first_success is None:
            self._transition(site, state, ResolutionState.EXHAUSTED)
            self.metrics_client.increment("icons.resolve.exhausted")
            logger.info(
                f"No usable icon for {site.url}",
                extra={
                    "site": site.url,
                    "candidates": len(ranked),
                    "failures": len(failures),
                },
            )
            return ResolutionResult(
                site=site, requested_size=size, candidate_count=len(candidates)
            )

        tie_key = self.scorer.provisional_key(ranked[first_success], size)
        tied_end = first_success + 1
        while (
            tied_end < len(ranked)
            and self.scorer.provisional_key(ranked[tied_end], size) == tie_key
        ):
            tied_end += 1
        if tied_end > len(outcomes):
            state = self._transition(site, state, ResolutionState.VALIDATING)
            outcomes.extend(
                await self._try_batch(ranked[len(outcomes) : tied_end], forwarded_headers)
            )
            failures = [outcome for outcome in outcomes if isinstance(outcome, CandidateFailure)]

        tied = outcomes[first_success:tied_end]
        contenders = [outcome for outcome in tied if isinstance(outcome, ValidatedIcon)]
        rejected = {
            outcome.candidate.url for outcome in tied if isinstance(outcome, CandidateFailure)
        }

        state = self._transition(site, state, ResolutionState.SCORED)
        best = self.scorer.rank(contenders, size)[0]
        if not best.icon.content or best.icon.byte_length != len(best.icon.content):
            raise InternalInconsistency(
                f"Winning icon {best.icon.url} for {site.url} has no matching payload"
            )

        alternates = [
            candidate
            for candidate in ranked[first_success:]
            if candidate.url != best.icon.url and candidate.url not in rejected
        ]

        self._transition(site, state, ResolutionState.SUCCEEDED)
        self.metrics_client.increment("icons.resolve.found", tags={"kind": best.icon.kind.value})
        logger.info(
            f"Resolved icon for {site.url}",
            extra={
                "site": site.url,
                "icon": best.icon.url,
                "kind": best.icon.kind.value,
                "format": best.icon.format.value,
                "score": best.score,
                "failures": len(failures),
            },
        )
        return ResolutionResult(
            site=site,
            requested_size=size,
            icons=(
                best.icon.metadata(),
                *(IconMetadata.from_candidate(candidate) for candidate in alternates),
            ),
            best=best,
            content_hash=content_hash(best.icon.content),
            candidate_count=len(candidates),
        )

    async def _try_batch(
        self, batch: list[IconCandidate], forwarded_headers: Optional[Mapping[str, str]]
    ) -> list[ValidatedIcon | CandidateFailure]:
        """Fetch and validate a batch of candidates concurrently."""
        return list(
            await asyncio.gather(
                *[self._try_candidate(candidate, forwarded_headers) for candidate in batch]
            )
        )

    async def _try_candidate(
        self, candidate: IconCandidate, forwarded_headers: Optional[Mapping[str, str]]
    ) -> ValidatedIcon | CandidateFailure:
        """Fetch and validate one candidate, turning expected failures into values."""
        try:
            resource = await self.fetcher.fetch(candidate.url, candidate.kind, forwarded_headers)
            return self.validator.validate(candidate, resource)
        except (FetchError, InvalidImageContent) as exc:
            self.metrics_client.increment(
                "icons.candidate.failure",
                tags={"kind": candidate.kind.value, "error": type(exc).__name__},
            )
            logger.debug(
                f"Candidate {candidate.url} rejected: {exc}",
                extra={"icon": candidate.url, "kind": candidate.kind.value},
            )
            return CandidateFailure(candidate=candidate, error=exc)

    @staticmethod
    def _transition(
        site: SiteReference, current: ResolutionState, target: ResolutionState
    ) -> ResolutionState:
        if target not in TRANSITIONS[current]:
            raise InternalInconsistency(
                f"Invalid resolution transition {current.value} -> {target.value} for {site.url}"
            )
        logger.debug(
            f"Resolution of {site.url}: {current.value} -> {target.value}",
            extra={"site": site.url, "state": target.value},
        )
        return target
