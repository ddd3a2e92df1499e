"""Exceptions raised by the chat core and its collaborator stores."""


class ChatError(Exception):
    """Base class for chat service errors."""


class PersistenceError(ChatError):
    """A store was unavailable or rejected a write."""


class DuplicateUsernameError(ChatError):
    """Signup attempted with a username that already exists."""

    def __init__(self, username: str) -> None:
        super().__init__(f"Username {username!r} already exists")
        self.username = username


class RoomMembershipError(ChatError):
    """A session tried to join a room while still a member of another one."""


class EventValidationError(ChatError):
    """An inbound event was malformed or not allowed in the session's state."""
