"""Database utilities and models."""

from weekwise.db.base import Base
from weekwise.db import models  # noqa: F401  (imported for side effects)

__all__ = ["Base"]
