"""Error types and protocol error payload helpers."""

from __future__ import annotations

from typing import Dict, Optional


class MolgraphError(Exception):
    """Base exception type for molgraph.

    Attributes
    ----------
    code
        Stable error identifier.
    message
        Human-readable error message.
    details
        Optional detail payload for debugging.
    """

    def __init__(self, code: str, message: str, details: Optional[object] = None) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details

    def __reduce__(self):
        # Errors cross process-pool boundaries.
        return (self.__class__, (self.code, self.message, self.details))

    def to_response(self, request_id: Optional[str] = None) -> Dict[str, object]:
        """Return an offload protocol error response.

        Parameters
        ----------
        request_id
            Correlation id of the failed request, if any.

        Returns
        -------
        dict
            Error response payload.
        """
        return error_response(self.message, request_id)


class FormatError(MolgraphError):
    """Raised when structure text fails minimum structural requirements.

    Attributes
    ----------
    code
        Stable error identifier.
    message
        Human-readable error message.
    details
        Optional detail payload, e.g. the skipped record messages.
    """


class LoadError(MolgraphError):
    """Raised when a structure file cannot be located, read or classified.

    Attributes
    ----------
    code
        Stable error identifier.
    message
        Human-readable error message.
    details
        Optional detail payload for debugging.
    """


class ProtocolError(MolgraphError):
    """Raised for malformed offload requests.

    Attributes
    ----------
    code
        Stable error identifier.
    message
        Human-readable error message.
    details
        Optional detail payload for debugging.
    """


class ComputeError(MolgraphError):
    """Raised from channel futures when the worker answered with an error.

    Attributes
    ----------
    code
        Stable error identifier.
    message
        Error message reported by the worker.
    details
        The raw error response.
    """


class PdbWriterError(MolgraphError):
    """Errors raised when formatting PDB output.

    Attributes
    ----------
    code
        Stable error identifier.
    message
        Human-readable error message.
    details
        Optional detail payload for debugging.
    """


def error_response(message: str, request_id: Optional[str] = None) -> Dict[str, object]:
    """Build an offload protocol error response.

    Parameters
    ----------
    message
        Human-readable failure message.
    request_id
        Correlation id to echo; omitted from the payload when ``None``.

    Returns
    -------
    dict
        Error response payload.
    """

    response: Dict[str, object] = {"type": "error", "error": message}
    if request_id is not None:
        response["id"] = request_id
    return response
