"""Security-related models for PKCE authorization.

Contains the PKCE pair generated for each authorization attempt.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class PKCEPair:
    """PKCE (Proof Key for Code Exchange) pair for one authorization attempt.

    The verifier stays on this device; only the challenge is sent to the
    authorize endpoint.
    """

    verifier: str = field(repr=False)
    challenge: str = field()
    method: str = field(default="S256")

    def __post_init__(self) -> None:
        """Validate the pair is usable for an S256 exchange."""
        if not (43 <= len(self.verifier) <= 128):
            raise ValueError("verifier must be 43-128 characters")
        if not self.challenge:
            raise ValueError("challenge must not be empty")
        if self.method != "S256":
            raise ValueError("Only S256 code challenge method is supported")
