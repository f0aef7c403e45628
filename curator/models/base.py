"""Base model class for all database models."""

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class DBModel(BaseModel):
    """Base model for rows read from the database."""

    model_config = ConfigDict(from_attributes=True)

    id: Optional[int] = Field(None, description="Primary key")
    created_at: Optional[datetime] = Field(None, description="Creation timestamp")
    updated_at: Optional[datetime] = Field(None, description="Last update timestamp")

    @classmethod
    def from_row(cls, row: Optional[Dict[str, Any]]):
        """Build a model from a dict_row result, ignoring unknown columns."""
        if row is None:
            return None
        return cls(**{k: v for k, v in row.items() if k in cls.model_fields})
