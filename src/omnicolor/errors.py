class OmnicolorError(Exception):
    """Base class for all errors raised by omnicolor."""


class ConfigError(OmnicolorError, ValueError):
    """Invalid run configuration, detected before any pixel is placed."""


class InvariantViolation(OmnicolorError, RuntimeError):
    """Internal consistency failure. Indicates a bug, never retried."""


class EmptyPaletteError(InvariantViolation):
    pass


class FrameWriteError(OmnicolorError, OSError):
    """A frame could not be written. Frames written before it stay valid."""
