"""
Database models module.

Imports every model so it is registered with Base.metadata before table
creation.
"""
from echoprep.db.models.user import User
from echoprep.db.models.interview import Interview
from echoprep.db.models.resume import Resume

__all__ = [
    "User",
    "Interview",
    "Resume",
]
