"""Backoffice — admin panel API for a small consultancy.

REST endpoints over users, clients, inquiries, projects and site settings,
guarded by JWT sessions with role checks, plus an append-only activity log.
"""

__version__ = "0.1.0"
