from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel
from pydantic.alias_generators import to_camel

from ..models.report import ReportCategory, ReportStatus


class CamelModel(BaseModel):
    """Wire format is camelCase; python attribute names stay snake_case"""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


class ReportCreate(CamelModel):
    # Content rules live in the report store so every violation is reported together
    title: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    location: Optional[str] = None
    image_url: Optional[str] = None


class ReportStatusUpdate(BaseModel):
    status: Optional[str] = None


class ReportOwner(CamelModel):
    id: int
    name: str
    email: str


class ReportResponse(CamelModel):
    id: int
    title: str
    description: str
    category: ReportCategory
    status: ReportStatus
    location: str
    image_url: Optional[str] = None
    owner_id: int
    owner: Optional[ReportOwner] = None
    created_at: datetime
    updated_at: datetime


class ReportEnvelope(BaseModel):
    message: Optional[str] = None
    report: ReportResponse


class ReportListResponse(BaseModel):
    count: int
    reports: List[ReportResponse]


class MessageResponse(BaseModel):
    message: str


class ReportStatsBody(CamelModel):
    total: int
    pending: int
    in_progress: int
    resolved: int


class ReportStatsResponse(BaseModel):
    stats: ReportStatsBody


class ImageUploadResponse(CamelModel):
    message: str
    image_url: str
