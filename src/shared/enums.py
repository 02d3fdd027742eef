"""
Shared enumerations for the PracticeFlow application.

Note: workflow and tenant enums live in src/domain/enums.py as they are domain concepts.
"""

from enum import Enum


class ActorType(str, Enum):
    """Actor type enumeration for request context"""

    USER = "user"
    SYSTEM = "system"
