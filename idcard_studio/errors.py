"""Exception types raised by the card rendering core."""


class CardStudioError(Exception):
    """Base class for every error raised by idcard_studio."""


class ConfigurationError(CardStudioError, ValueError):
    """A template design is malformed and cannot be rendered at all."""


class ResourceUnavailable(CardStudioError):
    """An image (photo, logo, background) could not be fetched or decoded."""

    def __init__(self, source: str, reason: str):
        super().__init__(f"{source}: {reason}")
        self.source = source
        self.reason = reason


class TemplateNotFound(CardStudioError, LookupError):
    pass


class StudentNotFound(CardStudioError, LookupError):
    pass
