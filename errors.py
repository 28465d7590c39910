# errors.py


class StampError(Exception):
    """Base class for failures inside the watermark compositor."""


class DecodeError(StampError):
    """The source bytes could not be decoded into a bitmap."""


class MeasurementError(StampError):
    """Text could not be measured, so its wrapped layout is unknown."""


class ExportError(StampError):
    """The composited surface could not be encoded."""
