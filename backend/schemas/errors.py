"""Error envelope returned by every failing request."""
from datetime import datetime
from typing import List, Optional

from schemas.base import ApiModel


class FieldIssue(ApiModel):
    property: str
    message: str


class ErrorResponse(ApiModel):
    success: bool = False
    error: str
    message: str
    status_code: int
    timestamp: datetime
    path: str
    errors: Optional[List[FieldIssue]] = None
