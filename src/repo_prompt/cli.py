# /// script
# requires-python = ">=3.13"
# dependencies = [
#     "pydantic",
#     "python-dotenv",
#     "structlog",
#     "tiktoken",
# ]
# ///
"""
repo_prompt: Serialize source trees into a single prompt for an LLM.

Overview
--------
This utility walks one or more directories and exports every selected text
file into one document, in one of three formats:

1) **Delimited text** (default): a preamble, then for each file a `----`
   line, the relative path and the contents, then `--END--`. Anything written
   after `--END--` can serve as instructions about the code.

2) **JSON (`--json`)**: `total_tokens`, `file_count` and the list of files
   with their path, token count and contents.

3) **XML (`--xml`)**: the same data in a `<root>` element, contents wrapped in
   CDATA sections. `--json` wins if both are given.

Selection is driven by `.gptinclude` / `.gptignore` files (one glob per line,
`#` comments, trailing `/` for directories) and, unless `--ignore-gitignore`,
by `.gitignore`. Ignore rules always win over include rules. Binary files and
symbolic links are skipped.

Usage
-----
Run `python -m repo_prompt.cli --help` for full options. Common examples:
    - Print a repository as delimited text:
        uv run python -m repo_prompt.cli path/to/repo

    - Two repositories into a JSON file, without comments:
        uv run python -m repo_prompt.cli repo_a repo_b --json --scrub-comments --output ctx.json

    - XML with an exact tiktoken count:
        uv run python -m repo_prompt.cli path/to/repo --xml --encoding cl100k_base --estimate
"""

from __future__ import annotations

import argparse
import sys
from typing import TYPE_CHECKING

from repo_prompt import __version__
from repo_prompt.exceptions import RepoPromptError
from repo_prompt.logging import setup_logging
from repo_prompt.pipeline import run
from repo_prompt.settings import Settings, env_default

if TYPE_CHECKING:
    from collections.abc import Sequence

logger = setup_logging()


def parse_args(argv: Sequence[str] | None = None) -> Settings:
    """Parse command-line arguments into run settings.

    Args:
        argv (Sequence[str] | None): the arguments, `sys.argv[1:]` if None

    Returns:
        Settings: the immutable run configuration
    """
    p = argparse.ArgumentParser(
        prog="repo-prompt",
        description="Convert one or more source trees into a single text file for an LLM prompt.",
    )
    p.add_argument("roots", nargs="+", help="Root directories to export, in order.")
    p.add_argument("-p", "--preamble", type=str, default=None, help="Path to preamble text file.")
    p.add_argument("-o", "--output", type=str, default=None, help="Path to output file (must not exist).")
    p.add_argument(
        "-e",
        "--estimate",
        action="store_true",
        help="Estimate the number of tokens in the output.",
    )
    p.add_argument("-i", "--ignore", type=str, default=None, help="Path to .gptignore file.")
    p.add_argument("-I", "--include", type=str, default=None, help="Path to .gptinclude file.")
    p.add_argument(
        "-g",
        "--ignore-gitignore",
        action="store_true",
        help="Ignore the .gitignore file.",
    )
    p.add_argument("-j", "--json", action="store_true", help="Output JSON.")
    p.add_argument("-x", "--xml", action="store_true", help="Output XML (--json takes precedence).")
    p.add_argument(
        "-d",
        "--debug",
        action="store_true",
        help="Debug mode. Do not output to standard output.",
    )
    p.add_argument(
        "-s",
        "--scrub-comments",
        action="store_true",
        help="Scrub comments from the output. Decreases token count.",
    )
    p.add_argument(
        "--encoding",
        type=str,
        default=env_default("encoding", "approx"),
        help="Token estimator: 'approx' (chars / 3.5) or a tiktoken encoding such as cl100k_base.",
    )
    p.add_argument("--log-file", type=str, default=env_default("log_file"), help="Log file path.")
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    args = p.parse_args(argv)
    return Settings(
        roots=args.roots,
        ignore_file=args.ignore,
        include_file=args.include,
        use_gitignore=not args.ignore_gitignore,
        json_output=args.json,
        xml_output=args.xml,
        debug=args.debug,
        scrub_comments=args.scrub_comments,
        output=args.output,
        preamble=args.preamble,
        estimate=args.estimate,
        encoding=args.encoding,
        log_file=args.log_file,
    )


def main(argv: Sequence[str] | None = None) -> int:
    settings = parse_args(argv)
    if settings.log_file:
        setup_logging(settings.log_file)

    try:
        run(settings)
    except RepoPromptError as e:
        logger.error("Export failed", error=str(e), kind=type(e).__name__)
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
