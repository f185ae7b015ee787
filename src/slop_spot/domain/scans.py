"""Models for label analysis and scan results."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

MIN_RATING = 0.0
MAX_RATING = 100.0


class Citation(BaseModel):
    """Source backing a health claim."""

    model_config = ConfigDict(frozen=True)

    title: str
    url: str
    source: str


class Ingredient(BaseModel):
    """Single analyzed ingredient with its health rating."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    rating: float = Field(ge=MIN_RATING, le=MAX_RATING)
    health_impact: str = ""
    explanation: str = ""
    citations: list[Citation] = Field(default_factory=list)


class LabelAnalysis(BaseModel):
    """Structured output of the label analysis model."""

    product_name: str
    ingredients: list[Ingredient]
    overall_score: float = Field(ge=MIN_RATING, le=MAX_RATING)


class ScanResult(BaseModel):
    """Immutable record of one completed scan."""

    model_config = ConfigDict(frozen=True)

    id: str
    product_name: str
    image_uri: str
    ingredients: list[Ingredient]
    overall_score: float = Field(ge=MIN_RATING, le=MAX_RATING)
    grade_label: str
    timestamp: datetime
    citations: list[Citation] = Field(default_factory=list)
    is_favorite: bool = False
