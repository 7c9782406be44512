"""Custom exception hierarchy for puzzle generation."""


class PuzzleError(Exception):
    """Base exception for engine failures."""


class EdgeKeyError(PuzzleError, ValueError):
    """Raised when an edge key string cannot be parsed."""


class UnknownSymbolKindError(PuzzleError, KeyError):
    """Raised when a symbol kind has no registered rule."""


class ConfigError(PuzzleError, ValueError):
    """Raised when generator configuration values are out of range."""


class GenerationError(PuzzleError):
    """Raised when no board satisfying the requested kinds could be assembled."""


class ValidationError(PuzzleError):
    """Raised when a candidate solution violates a placed symbol.

    ``failing`` maps each offending symbol kind to its target indexes.
    """

    def __init__(self, message: str, failing=None) -> None:
        super().__init__(message)
        self.failing = dict(failing or {})
