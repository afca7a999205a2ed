from __future__ import annotations


class CollaboratorUnavailable(RuntimeError):
    """Raised when a call needs an external collaborator (layout geometry,
    curriculum content, session history) that is missing or cannot serve the
    request."""

    def __init__(self, collaborator: str, reason: str) -> None:
        super().__init__(f"{collaborator} collaborator unavailable: {reason}")
        self.collaborator = collaborator
        self.reason = reason
