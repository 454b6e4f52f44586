"""Scoring and ranking of icon candidates"""

import logging
from typing import Iterable, Optional

from geticon.icons.constants import (
    FORMAT_WEIGHTS,
    KIND_PRIORITY,
    KIND_WEIGHTS,
    SIZE_FIT_MAX,
    SIZE_FIT_NEUTRAL,
    SIZE_FIT_OVERSIZE_FLOOR,
    SIZE_FIT_UNDERSIZE_CEILING,
    SIZE_QUALITY_BANDS,
    UNKNOWN_FORMAT_WEIGHT,
)
from geticon.icons.models import (
    IconCandidate,
    IconFormat,
    IconKind,
    ScoredIcon,
    ValidatedIcon,
)

logger = logging.getLogger(__name__)


class IconScorer:
    """Score icons by format quality, fit to the requested size, and kind priority.

    Scores are pure functions of their inputs, so the same candidates and
    request always produce the same order.
    """

    @staticmethod
    def format_weight(icon_format: Optional[IconFormat]) -> int:
        """Return the quality weight of an image format."""
        if icon_format is None:
            return UNKNOWN_FORMAT_WEIGHT
        return FORMAT_WEIGHTS[icon_format]

    @staticmethod
    def kind_weight(kind: IconKind) -> int:
        """Return the weight reflecting how intentional an icon source is."""
        return KIND_WEIGHTS[kind]

    @staticmethod
    def size_fit(size: Optional[int], scalable: bool, requested_size: Optional[int]) -> int:
        """Return how well an icon of `size` serves a request for `requested_size`.

        With a requested size, anything at least that large scores above
        `SIZE_FIT_OVERSIZE_FLOOR` and peaks at an exact match, while anything
        smaller scores below `SIZE_FIT_UNDERSIZE_CEILING`. Without one, larger
        icons score higher. Unknown sizes get a neutral score.
        """
        if scalable:
            return SIZE_FIT_MAX
        if size is None or size <= 0:
            return SIZE_FIT_NEUTRAL

        if requested_size is None:
            for minimum, fit in SIZE_QUALITY_BANDS:
                if size >= minimum:
                    return fit
            return SIZE_QUALITY_BANDS[-1][1]

        if size >= requested_size:
            oversize = size - requested_size
            span = SIZE_FIT_MAX - SIZE_FIT_OVERSIZE_FLOOR
            return SIZE_FIT_MAX - (span * oversize) // (oversize + requested_size)

        return (SIZE_FIT_UNDERSIZE_CEILING * size) // requested_size

    def score_candidate(self, candidate: IconCandidate, requested_size: Optional[int]) -> int:
        """Score a candidate from its declared metadata alone."""
        scalable = candidate.scalable or candidate.format_hint is IconFormat.SVG
        return (
            self.format_weight(candidate.format_hint)
            + self.size_fit(candidate.declared_size, scalable, requested_size)
            + self.kind_weight(candidate.kind)
        )

    def score(self, icon: ValidatedIcon, requested_size: Optional[int]) -> ScoredIcon:
        """Score a validated icon using its confirmed format and effective size."""
        score = (
            self.format_weight(icon.format)
            + self.size_fit(icon.size, icon.scalable, requested_size)
            + self.kind_weight(icon.kind)
        )
        return ScoredIcon(icon=icon, score=score, requested_size=requested_size)

    def provisional_key(
        self, candidate: IconCandidate, requested_size: Optional[int]
    ) -> tuple[int, int]:
        """Return the sort key of a candidate before its payload is known.

        Candidates sharing a key can only be told apart once validated.
        """
        return -self.score_candidate(candidate, requested_size), KIND_PRIORITY[candidate.kind]

    def rank_candidates(
        self, candidates: Iterable[IconCandidate], requested_size: Optional[int]
    ) -> list[IconCandidate]:
        """Order candidates best first. Ties break by kind priority, then URL."""
        return sorted(
            candidates,
            key=lambda candidate: (
                *self.provisional_key(candidate, requested_size),
                candidate.url,
            ),
        )

    def rank(
        self, icons: Iterable[ValidatedIcon], requested_size: Optional[int]
    ) -> list[ScoredIcon]:
        """Order validated icons best first.

        Ties break by kind priority, then by larger payload as a proxy for
        detail, then by URL so the order is total.
        """
        scored = [self.score(icon, requested_size) for icon in icons]
        return sorted(
            scored,
            key=lambda scored_icon: (
                -scored_icon.score,
                KIND_PRIORITY[scored_icon.icon.kind],
                -scored_icon.icon.byte_length,
                scored_icon.icon.url,
            ),
        )
