from pydantic import BaseModel, Field, ConfigDict


class UrlRecord(BaseModel):
    """One original URL and its short identifier.

    Doubles as the create response body. ``from_attributes`` lets it read
    straight from the SQLAlchemy row.
    """
    original_url: str = Field(..., description="The URL exactly as submitted")
    short_url: int = Field(..., gt=0, description="Identifier used as the redirect key")

    # Records are never mutated once created
    model_config = ConfigDict(from_attributes=True, frozen=True)


class ErrorResponse(BaseModel):
    error: str


class HealthResponse(BaseModel):
    status: str
    environment: str
    store: str
