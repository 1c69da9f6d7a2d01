from dataclasses import dataclass
from pathlib import Path


@dataclass
class RepoPromptError(Exception):
    """Base exception for errors in the repo_prompt module."""

    message: str

    def __str__(self) -> str:
        return self.message


@dataclass
class ConfigurationError(RepoPromptError):
    """Raised when the run configuration cannot be honoured."""


@dataclass
class PatternCompileError(ConfigurationError):
    """Raised when a glob pattern from a rule file cannot be compiled."""

    pattern: str = ""


@dataclass
class WalkError(RepoPromptError):
    """Raised when a directory or file under a root cannot be read."""

    root: Path | None = None


@dataclass
class OutputError(RepoPromptError):
    """Raised when the output destination cannot be written."""

    path: Path | None = None


@dataclass
class InvalidMarkupError(RepoPromptError):
    """Raised when the rendered XML document does not parse."""
