"""Handle tokens and asynchronous request correlation."""

from rdportal.request.correlator import RequestCorrelator, RequestHandle
from rdportal.request.token import HandleToken, new_token

__all__ = [
    "HandleToken",
    "RequestCorrelator",
    "RequestHandle",
    "new_token",
]
