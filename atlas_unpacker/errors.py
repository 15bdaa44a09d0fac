"""Error types raised while unpacking an atlas."""


class AtlasUnpackError(Exception):
    """Base class for atlas unpacking errors."""


class FormatError(AtlasUnpackError, ValueError):
    """Descriptor document is unparseable or has no usable ``frames`` field."""


class GeometryError(AtlasUnpackError, ValueError):
    """A frame rectangle or composite offset falls outside valid bounds."""

    def __init__(self, name: str, message: str):
        super().__init__(f"{name}: {message}")
        self.name = name


class SkippedFrame(AtlasUnpackError):
    """A frame that was left out of the output, with the reason why.

    Raised by the extractor for degenerate frames and recorded by the parser
    for frame sources without a usable rectangle.
    """

    def __init__(self, name: str, reason: str):
        super().__init__(f"Skip {name}: {reason}")
        self.name = name
        self.reason = reason
