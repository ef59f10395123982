"""Declarative base for vouch SQLAlchemy models."""

from sqlalchemy.orm import DeclarativeBase


class BaseEntity(DeclarativeBase):
    """Base class for all vouch database entities."""
