"""Database Layer — SQLAlchemy declarative Base shared by all models.

Invariants:
    - Single async engine per process (infrastructure/database.py, via init_db)
    - All sessions are async (AsyncSession)

Design Decisions:
    - asyncpg driver for PostgreSQL, aiosqlite for local runs and tests
"""
