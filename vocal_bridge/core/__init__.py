from vocal_bridge.core.config import BridgeConfig
from vocal_bridge.core.types import Entity, Relation, RelationView

__all__ = ["BridgeConfig", "Entity", "Relation", "RelationView"]
