from __future__ import annotations

from typing import TYPE_CHECKING

from repo_prompt.config import Document, OutputFormat
from repo_prompt.exceptions import ConfigurationError, OutputError
from repo_prompt.file_manipulation import walk_tree
from repo_prompt.logging import logger
from repo_prompt.output_construction import render_json, render_text, render_xml, scrub_document
from repo_prompt.rule_files import build_ignore_list, build_include_list
from repo_prompt.tokens import get_estimator

if TYPE_CHECKING:
    from pathlib import Path

    from repo_prompt.settings import Settings
    from repo_prompt.tokens import TokenEstimator


def resolve_root(root: Path) -> Path:
    """Resolve a root path, following a symlinked root to its target.

    A root that is a broken symlink is kept as given (the walk then reports it).

    Args:
        root (Path): the root as passed by the user

    Returns:
        Path: the absolute root to walk
    """
    if root.is_symlink() and not root.exists():
        logger.warning("Root is a symlink to a non-existent target, using original path", root=str(root))
        return root.absolute()
    return root.resolve()


def collect_document(settings: Settings, estimator: TokenEstimator) -> Document:
    """Walk every root and merge the selected files into one document.

    Each root gets its own include and ignore lists. Records are kept in root
    order, then in walk order. The first failing root aborts the whole run.

    Args:
        settings (Settings): the run configuration
        estimator (TokenEstimator): per-file token estimator

    Raises:
        ConfigurationError: if a rule file is missing or a pattern does not compile
        WalkError: if a root cannot be walked

    Returns:
        Document: the merged document, without a token total yet
    """
    document = Document()
    for raw_root in settings.roots:
        root = resolve_root(raw_root)
        include = build_include_list(root, settings.include_file)
        ignore = build_ignore_list(root, settings.ignore_file, use_gitignore=settings.use_gitignore)
        document = document.extended(walk_tree(root, include, ignore, estimator))
    return document


def read_preamble(path: Path | None) -> str | None:
    """Read the preamble file, if one is configured.

    Raises:
        ConfigurationError: if the file cannot be read
    """
    if path is None:
        return None
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigurationError(message=f"Error reading preamble file {path}: {e}") from e


def render_document(
    settings: Settings,
    document: Document,
    estimator: TokenEstimator,
    preamble: str | None = None,
) -> tuple[str, Document]:
    """Encode a document in the configured output format.

    Comments are scrubbed first when requested, so every count reflects the
    scrubbed contents.

    Args:
        settings (Settings): the run configuration
        document (Document): the collected files
        estimator (TokenEstimator): the run's token estimator
        preamble (str | None): preamble text for the delimited-text format

    Returns:
        tuple[str, Document]: the rendered output and the document with its total
    """
    if settings.scrub_comments:
        document = scrub_document(document, estimator)
    match settings.output_format:
        case OutputFormat.JSON:
            return render_json(document, estimator)
        case OutputFormat.XML:
            return render_xml(document, estimator)
        case _:
            return render_text(document, estimator, preamble=preamble)


def check_output_destination(settings: Settings) -> None:
    """Refuse to run when the output file already exists.

    Raises:
        ConfigurationError: if `settings.output` exists
    """
    if settings.output is not None and settings.output.exists():
        raise ConfigurationError(message=f"output file {settings.output} already exists")


def write_output(settings: Settings, output: str) -> None:
    """Write the rendered document to its destination.

    Without an output file the text goes to standard output, unless `debug` is set.

    Args:
        settings (Settings): the run configuration
        output (str): the rendered document

    Raises:
        ConfigurationError: if the output file already exists
        OutputError: if the output file cannot be written
    """
    if settings.output is None:
        if not settings.debug:
            print(output)
        return
    check_output_destination(settings)
    try:
        with settings.output.open("x", encoding="utf-8") as f:
            f.write(output)
    except FileExistsError as e:
        raise ConfigurationError(message=f"output file {settings.output} already exists") from e
    except OSError as e:
        raise OutputError(message=f"could not write to output file {settings.output}: {e}", path=settings.output) from e
    logger.info("Output written", path=str(settings.output), bytes=len(output.encode("utf-8")))


def run(settings: Settings) -> Document:
    """Run a whole export: collect, render, write.

    Args:
        settings (Settings): the run configuration

    Returns:
        Document: the exported document, with its token total
    """
    check_output_destination(settings)
    preamble = read_preamble(settings.preamble)
    estimator = get_estimator(settings.encoding)
    document = collect_document(settings, estimator)
    output, document = render_document(settings, document, estimator, preamble)
    write_output(settings, output)
    if settings.estimate:
        print(f"Estimated number of tokens: {document.total_tokens}")
    logger.info(
        "Export complete",
        format=str(settings.output_format),
        files=document.file_count,
        total_tokens=document.total_tokens,
    )
    return document
