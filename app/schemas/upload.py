"""
Upload Schemas
"""

from app.schemas.common import ApiModel


class UploadResponse(ApiModel):
    """Location of a stored file."""

    url: str
    id: str
    name: str
    content_type: str
    size: int
