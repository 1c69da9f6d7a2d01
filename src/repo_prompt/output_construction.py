from __future__ import annotations

import io
import xml.etree.ElementTree as ET
from typing import TYPE_CHECKING
from xml.sax.saxutils import escape

from repo_prompt.config import DEFAULT_PREAMBLE, END_MARKER, FILE_DELIMITER, Document, FileRecord
from repo_prompt.exceptions import InvalidMarkupError
from repo_prompt.file_manipulation import scrub_comments

if TYPE_CHECKING:
    from repo_prompt.tokens import TokenEstimator

CDATA_END = "]]>"
_XML_ENTITIES = {'"': "&quot;", "'": "&apos;"}
_TOTAL_PLACEHOLDER = "PLACEHOLDER"


def scrub_document(document: Document, estimator: TokenEstimator) -> Document:
    """Strip comments from every file of a document.

    Per-file token counts are re-estimated from the scrubbed contents.

    Args:
        document (Document): the document to clean
        estimator (TokenEstimator): the run's token estimator

    Returns:
        Document: a new document with scrubbed contents
    """
    files = []
    for rec in document.files:
        contents = scrub_comments(rec.contents)
        files.append(FileRecord(path=rec.path, tokens=estimator.estimate(contents), contents=contents))
    return Document(files=tuple(files))


def render_text(
    document: Document,
    estimator: TokenEstimator,
    preamble: str | None = None,
) -> tuple[str, Document]:
    """Render a document as delimited text.

    The text is the preamble, then for each file a `----` line, a line with the
    relative path and the contents followed by a newline, then `--END--`
    without a trailing newline.

    Args:
        document (Document): the files to render
        estimator (TokenEstimator): estimator for the whole rendering
        preamble (str | None): custom preamble text; the default framing sentence if None

    Returns:
        tuple[str, Document]: the rendered text, and the document with `total_tokens` set
    """
    out = io.StringIO()
    out.write(DEFAULT_PREAMBLE if preamble is None else f"{preamble}\n")
    for rec in document.files:
        out.write(f"{FILE_DELIMITER}\n")
        out.write(f"{rec.path}\n")
        out.write(f"{rec.contents}\n")
    out.write(END_MARKER)
    text = out.getvalue()
    return text, document.model_copy(update={"total_tokens": estimator.estimate(text)})


def render_json(document: Document, estimator: TokenEstimator) -> tuple[str, Document]:
    """Render a document as JSON.

    The total is computed from the delimited-text rendering so that both formats
    report the same number; that rendering is then discarded.

    Args:
        document (Document): the files to render
        estimator (TokenEstimator): estimator for the total

    Returns:
        tuple[str, Document]: the JSON text, and the document with `total_tokens` set
    """
    _, measured = render_text(document, estimator)
    return measured.model_dump_json(), measured


def cdata_sections(text: str) -> list[str]:
    """Split text into chunks that can each be wrapped in a CDATA section.

    A CDATA section cannot contain `]]>`. Every occurrence is cut between `]]`
    and `>`: the `]]` closes one chunk and the `>` opens the next one. Joining
    the chunks gives back `text` exactly.

    Args:
        text (str): arbitrary file contents

    Returns:
        list[str]: at least one chunk, none of which contains `]]>`
    """
    pieces = text.split(CDATA_END)
    if len(pieces) == 1:
        return [text]
    chunks = [pieces[0] + "]]"]
    chunks.extend(f">{piece}]]" for piece in pieces[1:-1])
    chunks.append(">" + pieces[-1])
    return chunks


def wrap_cdata(text: str) -> str:
    """Wrap text into one or more adjacent CDATA sections."""
    return "".join(f"<![CDATA[{chunk}]]>" for chunk in cdata_sections(text))


def _xml_body(document: Document, total_tokens: str) -> str:
    out = io.StringIO()
    out.write('<?xml version="1.0" encoding="UTF-8"?>\n')
    out.write("<root>\n")
    out.write(f"    <total_tokens>{total_tokens}</total_tokens>\n")
    out.write(f"    <file_count>{document.file_count}</file_count>\n")
    out.write("    <files>\n")
    for rec in document.files:
        out.write("        <file>\n")
        out.write(f"            <path>{escape(rec.path, _XML_ENTITIES)}</path>\n")
        out.write(f"            <tokens>{rec.tokens}</tokens>\n")
        out.write(f"            <contents>{wrap_cdata(rec.contents)}</contents>\n")
        out.write("        </file>\n")
    out.write("    </files>\n")
    out.write("</root>\n")
    return out.getvalue()


def validate_xml(text: str) -> None:
    """Check that a rendered XML document parses.

    Args:
        text (str): the XML document

    Raises:
        InvalidMarkupError: if the document is not well-formed
    """
    try:
        ET.fromstring(text.encode("utf-8"))  # noqa: S314
    except ET.ParseError as e:
        raise InvalidMarkupError(message=f"XML validation error: {e}") from e


def render_xml(document: Document, estimator: TokenEstimator) -> tuple[str, Document]:
    """Render a document as XML.

    The total is the estimate of the XML rendering itself, measured with a
    placeholder in the `total_tokens` element. The result is validated before
    it is returned.

    Args:
        document (Document): the files to render
        estimator (TokenEstimator): estimator for the total

    Raises:
        InvalidMarkupError: if the rendering does not parse

    Returns:
        tuple[str, Document]: the XML text, and the document with `total_tokens` set
    """
    total = estimator.estimate(_xml_body(document, _TOTAL_PLACEHOLDER))
    text = _xml_body(document, str(total))
    validate_xml(text)
    return text, document.model_copy(update={"total_tokens": total})
