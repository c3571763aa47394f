# src/core/errors.py — v1
"""Error taxonomy for the workflow orchestrator.

Only ValidationError is meant to reach the user verbatim (saving a
workflow). Everything else is resolved inside the orchestrator.
"""

from __future__ import annotations


class ImageflowError(Exception):
    """Base class for orchestrator errors."""


class ValidationError(ImageflowError):
    """Bad user input to the workflow registry (empty name, no steps)."""


class EncodingError(ImageflowError):
    """Artifact bytes could not be read or serialized."""


class CompatibilityError(ImageflowError):
    """Target tool cannot accept the artifact's format."""

    def __init__(self, mime_type: str, target_tool: str, accepted: list[str]) -> None:
        self.mime_type = mime_type
        self.target_tool = target_tool
        self.accepted = accepted
        if accepted:
            detail = f"it accepts {', '.join(accepted)}"
        else:
            detail = "it does not take file input"
        super().__init__(
            f"{target_tool} cannot open a {mime_type} file; {detail}"
        )
