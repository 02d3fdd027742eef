"""
Request context management using contextvars.

Provides async-safe storage for request-scoped data like the acting user.
Workflow events emitted during a request inherit the actor when the caller
does not pass one explicitly.

Usage:
    # In a request dependency:
    set_current_user(user_id="user123", actor_type=ActorType.USER)

    # In any code that needs the current user:
    user_id = get_current_actor_id()  # Returns "user123" or None

    # Context is automatically reset per request due to contextvars
"""

from contextvars import ContextVar

from src.shared.enums import ActorType

# Context variables for request-scoped user data
_current_user_id: ContextVar[str | None] = ContextVar("current_user_id", default=None)
_current_actor_type: ContextVar[ActorType] = ContextVar("current_actor_type", default=ActorType.SYSTEM)


def set_current_user(user_id: str | None, actor_type: ActorType = ActorType.USER) -> None:
    """
    Set the current user context for this request.

    The context is automatically scoped to the current async task.
    """
    _current_user_id.set(user_id)
    _current_actor_type.set(actor_type)


def clear_current_user() -> None:
    """Clear the current user context."""
    _current_user_id.set(None)
    _current_actor_type.set(ActorType.SYSTEM)


def get_current_actor_id() -> str | None:
    """Get the current user ID, or None if not authenticated."""
    return _current_user_id.get()
