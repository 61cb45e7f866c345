"""Response envelope shared by every JSON endpoint."""

from typing import Any, Optional

from pydantic import BaseModel, Field


class Envelope(BaseModel):
    """``{"success": ..., "message": ..., "data": ...}``.

    Error responses use the same keys plus ``code``; see
    ``core.errors``.
    """

    success: bool = Field(True, examples=[True])
    message: Optional[str] = Field(None, examples=["Report created successfully"])
    data: Any = None
