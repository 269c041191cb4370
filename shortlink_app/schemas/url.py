from pydantic import BaseModel, HttpUrl, Field, ConfigDict
from typing import List, Optional
from datetime import datetime


class URLCreate(BaseModel):
    original_url: HttpUrl = Field(..., description="The original URL to be shortened")
    custom_code: Optional[str] = Field(
        None,
        min_length=4,
        max_length=10,
        pattern=r"^[A-Za-z0-9]+$",
        description="Caller-chosen short code (4-10 alphanumerics)",
    )
    duration: Optional[int] = Field(
        None,
        ge=1,
        le=100,
        description="Lifetime in hours; the configured default applies when omitted",
    )


class URLCreateResponse(BaseModel):
    short_url: str


class URLDurationUpdate(BaseModel):
    expires_at: datetime = Field(..., description="New expiry timestamp")


class URLItem(BaseModel):
    """One row of an owner's link listing.

    views is the persisted count plus whatever the cache has not yet
    flushed, so it runs ahead of the database between aggregation sweeps.
    """
    id: int
    original_url: str
    short_url: str
    expires_at: datetime
    is_custom: bool
    views: int

    # Pydantic V2 style configuration
    model_config = ConfigDict(from_attributes=True)


class URLListResponse(BaseModel):
    items: List[URLItem]
    total: int
