"""
Repository layer for data access.

Repositories encapsulate SQLAlchemy queries for each domain area. Owned
repositories are constructed with the authenticated user's id and restrict
every statement to rows carrying that owner_id.
"""
