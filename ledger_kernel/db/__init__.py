"""Database layer: declarative bases, engine/session management, status store."""
