"""Exceptions raised while parsing and building RTP packets."""


class RTPError(Exception):
    """Base class for every error raised by this package."""


class HeaderSizeInsufficientError(RTPError):
    """The buffer is too short to hold the RTP header."""


class HeaderSizeInsufficientForExtensionError(RTPError):
    """The buffer is too short to hold the announced header extension."""


class TooSmallError(RTPError):
    """The buffer is too small to hold the expected data."""


class ShortBufferError(RTPError):
    """The destination buffer is too small for the serialized data."""


class HeaderExtensionNotFoundError(RTPError):
    """The requested header extension does not exist."""


class HeaderExtensionsNotEnabledError(RTPError):
    """Header extensions are not enabled on this header."""


class ExtensionIDRangeError(RTPError, ValueError):
    """An extension ID lies outside the range its profile allows."""


class ExtensionSizeError(RTPError, ValueError):
    """An extension payload is larger than its profile allows."""