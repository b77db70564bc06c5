from pydantic import BaseModel, ConfigDict
from typing import List, Optional
from datetime import datetime


class ShortenRequest(BaseModel):
    url: Optional[str] = None


class ShortenResponse(BaseModel):
    short_code: str
    short_url: str
    original_url: str


class LinkRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    short_code: str
    original_url: str
    created_at: datetime
    clicks: int


class AuthRequest(BaseModel):
    password: Optional[str] = None


class AuthResponse(BaseModel):
    token: str


class AdminCreateRequest(BaseModel):
    url: Optional[str] = None
    slug: Optional[str] = None


class AdminCreateResponse(LinkRecord):
    short_url: str


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    totalPages: int


class LinkStats(BaseModel):
    totalLinks: int
    totalClicks: int


class LinkListResponse(BaseModel):
    links: List[LinkRecord]
    pagination: Pagination
    stats: LinkStats
