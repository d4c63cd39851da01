"""Error types raised by MakeMCP."""

from __future__ import annotations

from typing import List, Optional


class MakeMCPError(Exception):
    pass


class ParamsInvalidError(MakeMCPError):
    pass


class SpecUnreachableError(MakeMCPError):
    pass


class SpecMalformedError(MakeMCPError):
    pass


class SpecInvalidError(MakeMCPError):
    def __init__(self, diagnostics: List[str]) -> None:
        self.diagnostics = list(diagnostics)
        joined = "; ".join(self.diagnostics)
        super().__init__(f"OpenAPI document failed validation: {joined}")


class ConfigIOError(MakeMCPError):
    pass


class SourceNotFoundError(MakeMCPError):
    pass


class HandlerBuildError(MakeMCPError):
    pass


class UpstreamTransportError(MakeMCPError):
    pass


class AuthConfigError(MakeMCPError):
    pass


class AuthError(MakeMCPError):
    """Bearer authentication failure; ``kind`` selects the HTTP status."""

    def __init__(self, kind: str, message: str, cause: Optional[Exception] = None) -> None:
        self.kind = kind
        self.cause = cause
        super().__init__(message)
