"""Store variants for the domain persistence contracts.

- sql: the real thing, PostgreSQL through async SQLAlchemy
- memory: dict-backed doubles for tests and local experiments
"""
