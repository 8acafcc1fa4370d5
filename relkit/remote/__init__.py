"""HTTP access to remote release APIs."""

from .http import HttpClient, HttpError, HttpResponse, MockHttpClient, RealHttpClient, RecordedRequest

__all__ = [
    "HttpClient",
    "HttpError",
    "HttpResponse",
    "MockHttpClient",
    "RealHttpClient",
    "RecordedRequest",
]
