from app.store.session_store import InMemorySessionStore, SessionStore

__all__ = ["InMemorySessionStore", "SessionStore"]
