class WireheadError(Exception):
    """Base for all Wirehead exceptions."""

    pass


# High-level families
class ValidationError(WireheadError):
    """Data validation failures."""

    pass


class SessionError(WireheadError):
    """Session lifecycle failures."""

    pass


class RenderError(WireheadError):
    """Image generation failures."""

    pass


class ChannelError(WireheadError):
    """Posting to a chat channel failed."""

    pass


# Validation subtypes
class ActionDecodeError(ValidationError):
    """Raised when an action token cannot be decoded."""

    pass


class ActionEncodeError(ValidationError):
    """Raised when an action cannot be represented as a token."""

    pass


class TagTableError(ValidationError):
    """Raised when a tag table cannot be loaded or is unusable."""

    pass


# Session subtypes
class SessionAlreadyRunningError(SessionError):
    """A session is already active for the conversation."""

    pass


class NoActiveSessionError(SessionError):
    """There is no active session for the conversation."""

    pass
