"""Error and warning types shared by the filters and the reverb.

Everything fatal derives from DSPError (a ValueError), so callers that only
care about "bad input" can catch one thing. Advisories are warnings, not
errors: processing continues after they are issued.
"""


class DSPError(ValueError):
    """Base class for fatal input errors."""


class InvalidSignal(DSPError):
    """Sample buffer has the wrong element type or shape."""


class InvalidCoefficients(DSPError):
    """Filter taps cannot define a filter (all zero, empty, or b[0] == 0)."""


class InvalidMode(DSPError):
    """All-pass mode/gain combination is undefined."""


class ParameterOutOfRange(DSPError):
    """A scalar or per-line parameter violates its constraint."""


class StabilityAdvisory(UserWarning):
    """Configuration is accepted but may ring, glitch or blow up."""


class SignalShapeWarning(UserWarning):
    """Buffer has more channels than samples (probably transposed)."""
