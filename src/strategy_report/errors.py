"""Error taxonomy for the report analysis pipeline.

ParseError and NoValidDataError are kept distinct so a caller can tell
"wrong file" apart from "empty report". Row-level anomalies never surface
here: the parser skips the row and records a warning instead.
"""


class ReportError(Exception):
    """Base exception for report analysis errors."""

    pass


class ParseError(ReportError):
    """Source is empty, unreadable, oversized, or not a recognized report layout."""

    pass


class NoValidDataError(ReportError):
    """Report layout was recognized but yielded zero usable rows."""

    pass


class ValidationError(ReportError):
    """Caller-supplied parameter rejected before any recomputation."""

    pass
