from __future__ import annotations

import os
from pathlib import Path

from dotenv import dotenv_values, find_dotenv
from pydantic import BaseModel, ConfigDict, Field, computed_field

from repo_prompt.config import APPROX_ENCODING, OutputFormat

ENV_FILE = find_dotenv(usecwd=True)
ENV_PREFIX = "REPO_PROMPT_"


def env_default(name: str, default: str = "") -> str:
    """Read a default value from the environment, then from the nearest `.env` file.

    The `.env` file is read without being loaded into `os.environ`.

    Args:
        name (str): the setting name, without the `REPO_PROMPT_` prefix
        default (str): value used when the variable is not set

    Returns:
        str: the configured value
    """
    key = f"{ENV_PREFIX}{name.upper()}"
    if key in os.environ:
        return os.environ[key]
    if ENV_FILE:
        value = dotenv_values(ENV_FILE).get(key)
        if value is not None:
            return value
    return default


class Settings(BaseModel):
    """Configuration settings for one export run."""

    model_config = ConfigDict(frozen=True)

    roots: tuple[Path, ...] = Field(..., min_length=1, description="Root directories to export, in order.")
    ignore_file: Path | None = Field(default=None, description="Explicit ignore rule file.")
    include_file: Path | None = Field(default=None, description="Explicit include rule file.")
    use_gitignore: bool = Field(default=True, description="Also honour <root>/.gitignore.")

    json_output: bool = Field(default=False, description="Emit JSON.")
    xml_output: bool = Field(default=False, description="Emit XML.")
    debug: bool = Field(default=False, description="Do not write to standard output.")
    scrub_comments: bool = Field(default=False, description="Strip code comments.")

    output: Path | None = Field(default=None, description="Output file; must not exist.")
    preamble: Path | None = Field(default=None, description="Preamble text file.")
    estimate: bool = Field(default=False, description="Print the token estimate.")

    encoding: str = Field(default=APPROX_ENCODING, description="'approx' or a tiktoken encoding name.")
    log_file: str = Field(default="", description="Log file path.")

    @computed_field
    @property
    def output_format(self) -> OutputFormat:
        """Resolve the format flags: JSON wins over XML, which wins over text."""
        if self.json_output:
            return OutputFormat.JSON
        if self.xml_output:
            return OutputFormat.XML
        return OutputFormat.TEXT
