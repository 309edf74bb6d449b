# coding=utf-8
"""Fatal errors raised by flexcalc. The command line entry point turns them into an exit code."""


class FlexcalcError(Exception):
    """Base class of all fatal flexcalc errors"""

    def __init__(self, message, detail=""):
        self.message = message
        self.detail = detail
        super().__init__(message, detail)

    def __str__(self):
        return f"{self.message}{self.detail}"


class ConfigurationError(FlexcalcError):
    pass


class TrajectorySourceError(FlexcalcError):
    """The trajectory source could not be opened or rewound."""


class EmptyTrajectoryError(FlexcalcError):
    def __init__(self, message="no frames in trajectory", detail=""):
        super().__init__(message, detail)


class ShapeMismatchError(FlexcalcError):
    """A frame holds a different number of atoms than the reference frame."""

    def __init__(self, header, expected, found, message="frame shape mismatch"):
        self.header = header
        self.expected = expected
        self.found = found
        noun = "atom" if expected in (1, "at least 1") else "atoms"
        detail = f" (frame '{header}': expected {expected} {noun}, found {found})"
        super().__init__(message, detail)


class FrameParseError(FlexcalcError):
    def __init__(self, line_number, line, message="malformed coordinate line"):
        self.line_number = line_number
        self.line = line
        super().__init__(message, f" (line {line_number}: {line!r})")


class FrameAllocationError(FlexcalcError):
    def __init__(self, header, message="unable to allocate frame copy"):
        self.header = header
        super().__init__(message, f" (frame '{header}')")
