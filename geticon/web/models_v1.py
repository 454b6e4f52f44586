"""Icon lookup response models"""

from typing import Optional

from pydantic import BaseModel

from geticon.icons.models import IconMetadata, ResolutionResult


class BestIcon(IconMetadata):
    """Model for the winning icon of a lookup."""

    score: int


class IconResponse(BaseModel):
    """Model for the `json` API response."""

    url: str
    icons: list[IconMetadata]
    best_icon: Optional[BestIcon] = None

    @classmethod
    def from_result(cls, result: ResolutionResult) -> "IconResponse":
        """Build the response body for a resolution."""
        best_icon = None
        if result.best is not None:
            best_icon = BestIcon(
                **result.best.icon.metadata().model_dump(), score=result.best.score
            )
        return cls(url=result.site.url, icons=list(result.icons), best_icon=best_icon)


class HealthResponse(BaseModel):
    """Model for the `health` endpoint response."""

    status: str
    service: str
    cache: dict[str, int | float]
