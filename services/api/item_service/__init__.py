"""Item service: CRUD over PostgreSQL with a Redis side-cache."""

__version__ = "0.1.0"
