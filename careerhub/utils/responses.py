"""Response envelope helpers."""
from typing import Any, Optional

from pydantic import BaseModel


class ORMModel(BaseModel):
    """Base for response schemas read straight from ORM objects."""

    class Config:
        from_attributes = True


def api_response(data: Any = None, message: str = "OK", meta: Optional[dict] = None) -> dict:
    """Build the `{success, message, data, meta}` envelope."""
    return {"success": True, "message": message, "data": data, "meta": meta}
