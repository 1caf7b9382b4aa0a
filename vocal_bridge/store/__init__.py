from vocal_bridge.store.entity_store import EntityRelationStore

__all__ = ["EntityRelationStore"]
