"""Error taxonomy for the chat/matching core.

Absence is never an error: read paths return ``None`` or an empty list when
a user, chat or attendee document is missing. Exceptions are reserved for
rejected input and for mutations the store could not complete.
"""


class EventMatchError(Exception):
    """Base class for errors raised by the core services."""


class ValidationError(EventMatchError):
    """Input rejected before any write was attempted.

    Retrying without changing the input will fail the same way.
    """


class StoreError(EventMatchError):
    """The backing store failed to complete a requested mutation.

    The original driver exception is always chained as ``__cause__``.
    """
