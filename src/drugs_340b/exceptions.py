"""Error taxonomy for the 340B drug tool server.

Cache misses and absent RxTerms records are not errors; they are reported
as None or empty results.
"""


class Drugs340BError(Exception):
    """Base class for all errors raised by this package."""


class DownloadError(Drugs340BError):
    """The NDC workbook could not be fetched (transport or HTTP status)."""


class ParseError(Drugs340BError):
    """The downloaded bytes are not a readable workbook with at least one sheet."""


class UpstreamError(Drugs340BError):
    """A call to the RxNav terminology service failed."""
