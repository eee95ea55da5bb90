"""Error taxonomy shared by the sync engine and its service wrappers."""

from typing import Optional


class MondayBotError(Exception):
    """Base class. `user_message` is safe to show in Discord."""

    user_message = "Something went wrong."

    def __init__(self, message: str, user_message: Optional[str] = None):
        super().__init__(message)
        if user_message is not None:
            self.user_message = user_message


class ValidationError(MondayBotError):
    """Required user input is missing or malformed."""

    def __init__(self, user_message: str):
        super().__init__(user_message, user_message)


class NotLinkedError(MondayBotError):
    """A thread has no mapped Monday item."""

    user_message = "This thread is not linked to a Monday.com project."

    def __init__(self, thread_id: str):
        super().__init__(f"Thread {thread_id} is not mapped to a Monday item")
        self.thread_id = thread_id


class NoStatusColumnError(MondayBotError):
    """The item has no column recognisable as its status."""

    user_message = "Could not find status column on this Monday.com item."

    def __init__(self, item_id: str):
        super().__init__(f"No status column on Monday item {item_id}")
        self.item_id = item_id


class UpstreamError(MondayBotError):
    """A call to Monday.com or Discord failed."""

    user_message = "Sorry, I couldn't reach the service. Please try again later."

    def __init__(self, service: str, operation: str, detail: str):
        super().__init__(f"{service} {operation} failed: {detail}")
        self.service = service
        self.operation = operation


class ThreadCreationFailed(MondayBotError):
    """No thread could be found or created for an item."""

    def __init__(self, item_id: str, reason: str):
        super().__init__(f"Could not resolve thread for Monday item {item_id}: {reason}")
        self.item_id = item_id
        self.reason = reason


class MappingConflictError(MondayBotError):
    """A thread is already mapped to a different item."""

    def __init__(self, thread_id: str, owner_item_id: str, item_id: str):
        super().__init__(
            f"Thread {thread_id} already belongs to item {owner_item_id}, "
            f"refusing to map it to item {item_id}"
        )
        self.thread_id = thread_id
        self.owner_item_id = owner_item_id
        self.item_id = item_id
