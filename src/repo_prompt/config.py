from __future__ import annotations

from enum import StrEnum, auto

from pydantic import BaseModel, ConfigDict, Field, computed_field

IGNORE_FILE_NAME = ".gptignore"
INCLUDE_FILE_NAME = ".gptinclude"
GITIGNORE_FILE_NAME = ".gitignore"

BUILTIN_IGNORES = (
    ".git/**",
    GITIGNORE_FILE_NAME,
    IGNORE_FILE_NAME,
    INCLUDE_FILE_NAME,
)

FILE_DELIMITER = "----"
END_MARKER = "--END--"

DEFAULT_PREAMBLE = (
    "The following text is a Git repository with code. The structure of the text are sections "
    "that begin with ----, followed by a single line containing the file path and file name, "
    "followed by a variable amount of lines containing the file contents. The text representing "
    "the Git repository ends when the symbols --END-- are encounted. Any further text beyond "
    "--END-- are meant to be interpreted as instructions using the aforementioned Git repository "
    "as context.\n"
)

APPROX_ENCODING = "approx"
CHARS_PER_TOKEN = 3.5


class OutputFormat(StrEnum):
    """Serialization formats for the exported document.

    When several formats are requested at once, the precedence is
    JSON, then XML, then delimited text.
    """

    TEXT = auto()
    JSON = auto()
    XML = auto()


class FileRecord(BaseModel):
    """One selected file of a walked tree.

    Attributes:
        path: Path relative to the root it was found under, with POSIX separators.
        tokens: Estimated token count of `contents`.
        contents: The decoded UTF-8 contents of the file.
    """

    model_config = ConfigDict(frozen=True)

    path: str = Field(..., description="File path relative to its root")
    tokens: int = Field(..., ge=0, description="Estimated token count of the contents")
    contents: str = Field(..., description="Decoded file contents")


class Document(BaseModel):
    """The ordered set of file records handed to an encoder.

    `total_tokens` is only ever filled by an encoder, from the text it rendered.
    `file_count` is derived from `files`.
    """

    model_config = ConfigDict(frozen=True)

    total_tokens: int = Field(default=0, ge=0, description="Token estimate of the rendered output")
    files: tuple[FileRecord, ...] = Field(default=(), description="Selected files, in walk order")

    @computed_field
    @property
    def file_count(self) -> int:
        """Number of files in the document."""
        return len(self.files)

    def extended(self, records: tuple[FileRecord, ...] | list[FileRecord]) -> Document:
        """Return a new document with `records` appended and the token total reset."""
        return Document(files=(*self.files, *records))
