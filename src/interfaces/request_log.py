"""Abstract base class for the outbound model-request log.

Every request sent to the inference service is recorded before it is
issued.  Recording is best effort: implementations must never raise.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class IRequestLog(ABC):
    """Append-only sink for outbound model requests."""

    @abstractmethod
    def record(self, request_type: str, prompt: str, model: str) -> None:
        """Record one request.

        Parameters
        ----------
        request_type:
            ``"embed"`` or ``"generate"``.
        prompt:
            The text sent to the model.
        model:
            The model id the request targets.
        """
