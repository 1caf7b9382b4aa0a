"""
Vocal Bridge Core Types
-----------------------
Pydantic models for the entity-relation store.
"""

import uuid
import time
from datetime import datetime, timezone
from typing import Optional, Dict, Any
from pydantic import BaseModel, Field


def _iso(ts: Optional[float]) -> Optional[str]:
    if ts is None:
        return None
    return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat()


class Entity(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str
    type: str
    content: str = ""
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: float = Field(default_factory=time.time)
    updated_at: float = Field(default_factory=time.time)

    def to_public(self, preview_chars: Optional[int] = None) -> Dict[str, Any]:
        """Render for tool output, optionally truncating content to a preview."""
        content = self.content
        if preview_chars is not None and len(content) > preview_chars:
            content = content[:preview_chars] + "..."
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "content": content,
            "metadata": self.metadata,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


class Relation(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    from_id: str
    to_id: str
    relation_type: str
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: float = Field(default_factory=time.time)


class RelationView(Relation):
    """A relation annotated with its endpoints' names and types.

    Endpoint fields are None when the entity on that side has been deleted.
    """
    from_name: Optional[str] = None
    from_type: Optional[str] = None
    to_name: Optional[str] = None
    to_type: Optional[str] = None

    def to_public(self) -> Dict[str, Any]:
        data = self.model_dump()
        data["created_at"] = _iso(self.created_at)
        return data
