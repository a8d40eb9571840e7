#!/usr/bin/env python3
"""tuider - A terminal speed reader that flashes text one word at a time."""

import argparse
import html
import logging
import re
import sys
import xml.etree.ElementTree as ET
import zipfile
from dataclasses import dataclass
from html.parser import HTMLParser
from pathlib import Path
from typing import Callable, Iterator, Optional, Sequence, TextIO

try:
    from pypdf import PdfReader
except ImportError:  # pragma: no cover - validated in runtime error path
    PdfReader = None  # type: ignore[assignment,misc]

from rich.ansi import AnsiDecoder
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel

from display import DEFAULT_ORP_COLOR, VALID_ORP_COLORS, orp_style
from errors import EmptyDocument, InputUnavailable, InvalidOption, TuiderError
from playback import DEFAULT_WPM, JUMP_SIZE, MAX_WPM, MIN_WPM, WPM_STEP

__version__ = "1.0.0"

console = Console(stderr=True)

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

USAGE_HINT = """No input provided. Pipe content or provide a file path.
Usage: tuider <file.md>  or  cat file.txt | tuider"""

MARKDOWN_SUFFIXES = (".md", ".markdown")
HTML_SUFFIXES = (".html", ".htm", ".xhtml")


@dataclass(frozen=True)
class TuiderConfig:
    wpm: int = DEFAULT_WPM
    orp_color: str = DEFAULT_ORP_COLOR
    wpm_step: int = WPM_STEP
    jump_size: int = JUMP_SIZE
    log_file: Optional[Path] = None


def build_config(args: argparse.Namespace) -> TuiderConfig:
    if not MIN_WPM <= args.wpm <= MAX_WPM:
        raise InvalidOption(
            f"Speed must be between {MIN_WPM} and {MAX_WPM} WPM (got {args.wpm})"
        )
    orp_style(args.color)
    return TuiderConfig(wpm=args.wpm, orp_color=args.color.lower(), log_file=args.log_file)


def configure_logging(log_file: Optional[Path]) -> None:
    """Send logs to ``log_file``; the terminal belongs to the reader."""
    if log_file is None:
        return
    logging.basicConfig(
        filename=log_file,
        level=logging.DEBUG,
        format=LOG_FORMAT,
        encoding="utf-8",
        force=True,
    )


# ─── text extraction ─────────────────────────────────────────────────


def _parse_range_selection(
    selection_str: str, total: int, label: str = "page"
) -> list[int]:
    selection = selection_str.strip()
    if not selection:
        raise InvalidOption(f"Invalid {label} selection")

    selected: list[int] = []
    seen: set[int] = set()
    for part in selection.split(","):
        token = part.strip()
        if not token:
            raise InvalidOption(f"Invalid {label} selection")

        if "-" in token:
            bounds = token.split("-", 1)
            if not bounds[0].isdigit() or not bounds[1].isdigit():
                raise InvalidOption(f"Invalid {label} selection")
            start = int(bounds[0])
            end = int(bounds[1])
            if start < 1 or end < start:
                raise InvalidOption(f"Invalid {label} selection")
            numbers: Sequence[int] = range(start, end + 1)
        else:
            if not token.isdigit() or int(token) < 1:
                raise InvalidOption(f"Invalid {label} selection")
            numbers = [int(token)]

        for number in numbers:
            if number > total:
                raise InvalidOption(
                    f"{label.title()} {number} is out of range (total: {total})"
                )
            index = number - 1
            if index not in seen:
                seen.add(index)
                selected.append(index)

    return selected


def _read_pdf(path: Path, page_selection: Optional[str]) -> str:
    if PdfReader is None:
        raise TuiderError("PDF support requires pypdf. Reinstall tuider with dependencies.")

    try:
        reader = PdfReader(str(path))
    except Exception as e:  # pragma: no cover - depends on third-party parser internals
        raise TuiderError(f"Failed to read PDF: {e}")

    total_pages = len(reader.pages)
    if page_selection:
        indices: Sequence[int] = _parse_range_selection(page_selection, total_pages)
    else:
        indices = range(total_pages)

    pages = [(reader.pages[i].extract_text() or "").strip() for i in indices]
    return "\n".join(p for p in pages if p)


_BLOCK_TAGS = frozenset(
    {
        "p",
        "div",
        "br",
        "h1",
        "h2",
        "h3",
        "h4",
        "h5",
        "h6",
        "li",
        "tr",
        "blockquote",
        "section",
        "article",
    }
)
_SKIPPED_TAGS = frozenset({"script", "style"})


class _HTMLTextExtractor(HTMLParser):
    """Extract plain text from HTML, stripping all tags."""

    def __init__(self) -> None:
        super().__init__()
        self._parts: list[str] = []
        self._skip_depth = 0

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        tag = tag.lower()
        if tag in _SKIPPED_TAGS:
            self._skip_depth += 1
        elif tag in _BLOCK_TAGS:
            self._parts.append("\n")

    def handle_endtag(self, tag: str) -> None:
        if tag.lower() in _SKIPPED_TAGS and self._skip_depth:
            self._skip_depth -= 1

    def handle_data(self, data: str) -> None:
        if not self._skip_depth:
            self._parts.append(data)

    def get_text(self) -> str:
        raw = "".join(self._parts)
        lines = raw.split("\n")
        paragraphs = [" ".join(line.split()) for line in lines]
        return "\n".join(p for p in paragraphs if p).strip()


def strip_html(markup: str) -> str:
    extractor = _HTMLTextExtractor()
    extractor.feed(markup)
    extractor.close()
    return extractor.get_text()


def _load_epub_spine(zf: zipfile.ZipFile) -> list[str]:
    """Return the chapter paths of an EPUB in reading order."""
    try:
        container_xml = zf.read("META-INF/container.xml")
    except KeyError:
        raise TuiderError("Invalid EPUB: missing META-INF/container.xml")

    container = ET.fromstring(container_xml)
    ns = {"c": "urn:oasis:names:tc:opendocument:xmlns:container"}
    rootfile_el = container.find(".//c:rootfile", ns)
    if rootfile_el is None:
        raise TuiderError("Invalid EPUB: no rootfile in container.xml")
    opf_path = rootfile_el.get("full-path", "")

    try:
        opf_xml = zf.read(opf_path)
    except KeyError:
        raise TuiderError(f"Invalid EPUB: missing {opf_path}")

    opf = ET.fromstring(opf_xml)
    opf_ns = opf.tag.split("}")[0] + "}" if "}" in opf.tag else ""
    opf_dir = opf_path.rsplit("/", 1)[0] + "/" if "/" in opf_path else ""

    manifest: dict[str, str] = {}
    for item in opf.findall(f".//{opf_ns}manifest/{opf_ns}item"):
        media = item.get("media-type", "")
        props = item.get("properties", "")
        if media == "application/xhtml+xml" and "nav" not in props:
            manifest[item.get("id", "")] = opf_dir + item.get("href", "")

    spine = [
        manifest[ref.get("idref", "")]
        for ref in opf.findall(f".//{opf_ns}spine/{opf_ns}itemref")
        if ref.get("idref", "") in manifest
    ]
    if not spine:
        raise TuiderError("No chapters found in EPUB")
    return spine


def _iter_epub_chapters(
    path: Path, chapter_selection: Optional[str]
) -> Iterator[str]:
    """Yield the plain text of each selected EPUB chapter."""
    try:
        zf = zipfile.ZipFile(str(path), "r")
    except (OSError, zipfile.BadZipFile) as e:
        raise TuiderError(f"Failed to open EPUB: {e}")

    with zf:
        chapters = _load_epub_spine(zf)
        if chapter_selection:
            indices: Sequence[int] = _parse_range_selection(
                chapter_selection, len(chapters), label="chapter"
            )
        else:
            indices = range(len(chapters))
        for index in indices:
            try:
                raw = zf.read(chapters[index])
            except KeyError:
                continue
            yield strip_html(raw.decode("utf-8", errors="replace"))


_FRONT_MATTER = re.compile(r"\A---\s*\n.*?\n---\s*\n", re.DOTALL)
_FENCE = re.compile(r"^\s*(```|~~~).*$", re.MULTILINE)
_IMAGE = re.compile(r"!\[[^\]]*\]\([^)]*\)")
_LINK = re.compile(r"\[([^\]]*)\]\([^)]*\)")
_REF_LINK = re.compile(r"\[([^\]]*)\]\[[^\]]*\]")
_LINK_DEF = re.compile(r"^\s*\[[^\]]+\]:\s*\S+.*$", re.MULTILINE)
_HTML_TAG = re.compile(r"<[^>\n]+>")
_HEADING = re.compile(r"^\s{0,3}#{1,6}\s*", re.MULTILINE)
_HEADING_CLOSE = re.compile(r"\s+#+\s*$", re.MULTILINE)
_QUOTE = re.compile(r"^\s*(>\s?)+", re.MULTILINE)
_LIST_MARKER = re.compile(r"^\s*(?:[-*+]|\d+[.)])\s+", re.MULTILINE)
_RULE = re.compile(r"^\s*([-*_])(\s*\1){2,}\s*$", re.MULTILINE)
_EMPHASIS = re.compile(r"(\*\*|\*|~~|`+)(?=\S)(.+?)(?<=\S)\1")
_UNDERSCORE_EMPHASIS = re.compile(r"(?<!\w)(__|_)(?=\S)(.+?)(?<=\S)\1(?!\w)")


def strip_markdown(text: str) -> str:
    """Reduce Markdown to the words a reader would see."""
    text = _FRONT_MATTER.sub("", text)
    text = _FENCE.sub("", text)
    text = _IMAGE.sub("", text)
    text = _LINK.sub(r"\1", text)
    text = _REF_LINK.sub(r"\1", text)
    text = _LINK_DEF.sub("", text)
    text = _HTML_TAG.sub("", text)
    text = _RULE.sub(" ", text)
    text = _HEADING.sub("", text)
    text = _HEADING_CLOSE.sub("", text)
    text = _QUOTE.sub("", text)
    text = _LIST_MARKER.sub("", text)
    for _ in range(3):
        text = _EMPHASIS.sub(r"\2", text)
        text = _UNDERSCORE_EMPHASIS.sub(r"\2", text)
    text = html.unescape(text)
    return " ".join(text.split())


def read_file(path: Path, selection: Optional[str] = None) -> str:
    if not path.exists():
        raise InputUnavailable(f"File not found: {path}")
    if not path.is_file():
        raise InputUnavailable(f"Not a regular file: {path}")
    suffix = path.suffix.lower()
    if selection and suffix not in (".pdf", ".epub"):
        raise InvalidOption("--pages can only be used with PDF or EPUB files")
    if suffix == ".pdf":
        return _read_pdf(path, selection)
    if suffix == ".epub":
        return "\n".join(_iter_epub_chapters(path, selection))
    try:
        content = path.read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        raise InputUnavailable(f"Cannot read {path}: {e.strerror or e}") from e
    if suffix in MARKDOWN_SUFFIXES:
        return strip_markdown(content)
    if suffix in HTML_SUFFIXES:
        return strip_html(content)
    return content


def get_text(args: argparse.Namespace, stdin: Optional[TextIO]) -> str:
    if args.file:
        return read_file(Path(args.file), args.pages)

    if args.pages:
        raise InvalidOption("--pages requires a PDF or EPUB file")

    if stdin is not None and not stdin.isatty():
        return _read_stream(stdin)

    raise InputUnavailable(USAGE_HINT)


def _read_stream(stdin: TextIO) -> str:
    # Invalid UTF-8 in piped text decodes to U+FFFD.
    try:
        buffer = getattr(stdin, "buffer", None)
        if buffer is not None:
            return buffer.read().decode("utf-8", errors="replace")
        return stdin.read()
    except OSError as e:
        raise InputUnavailable(f"Cannot read from stdin: {e.strerror or e}") from e


def tokenize(text: str) -> list[str]:
    """Split text into words, dropping terminal escapes and control characters."""
    plain = "\n".join(line.plain for line in AnsiDecoder().decode(text))
    words = []
    for token in plain.split():
        word = "".join(ch for ch in token if ch.isprintable())
        if word:
            words.append(word)
    return words


# ─── output ──────────────────────────────────────────────────────────


def print_error(message: str, print_fn: Callable[..., None] = console.print) -> None:
    panel = Panel.fit(
        f"[bold red]{escape(message)}[/bold red]",
        title="[bold]Error[/bold]",
        border_style="red",
    )
    print_fn(panel)


def _stdin_is_tty(stdin: Optional[TextIO]) -> bool:
    return stdin is not None and hasattr(stdin, "isatty") and stdin.isatty()


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tuider",
        description=(
            "Terminal UI speed reader - display text one word at a time "
            "using the RSVP technique"
        ),
    )
    parser.add_argument(
        "file", nargs="?", help="File to read (text, Markdown, HTML, PDF or EPUB)"
    )
    parser.add_argument(
        "-w",
        "--wpm",
        type=int,
        default=DEFAULT_WPM,
        help=f"Starting speed in words per minute (default: {DEFAULT_WPM})",
    )
    parser.add_argument(
        "-c",
        "--color",
        default=DEFAULT_ORP_COLOR,
        help=(
            f"Highlight color for the focus letter (default: {DEFAULT_ORP_COLOR}; "
            f"one of {', '.join(VALID_ORP_COLORS)})"
        ),
    )
    parser.add_argument(
        "--pages",
        default=None,
        help="PDF pages or EPUB chapters to read (1-based), e.g. 1,3-5",
    )
    parser.add_argument(
        "--log-file", type=Path, default=None, help="Write debug logs to this file"
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def main(
    argv: Optional[list[str]] = None,
    stdin: Optional[TextIO] = None,
    print_fn: Callable[..., None] = console.print,
    run_fn: Optional[Callable[..., None]] = None,
) -> int:
    if stdin is None:
        stdin = sys.stdin

    args = _build_parser().parse_args(argv)

    try:
        config = build_config(args)
        configure_logging(config.log_file)
        words = tokenize(get_text(args, stdin))
        if not words:
            raise EmptyDocument("Empty input: no words to read.")
    except TuiderError as e:
        print_error(str(e), print_fn)
        return 1

    if run_fn is None:
        from reader import run

        run_fn = run

    logger.info("Loaded %d words", len(words))
    try:
        run_fn(
            words,
            config.wpm,
            _stdin_is_tty(stdin),
            orp_color=config.orp_color,
            wpm_step=config.wpm_step,
            jump_size=config.jump_size,
        )
    except TuiderError as e:
        print_error(str(e), print_fn)
        return 1
    except KeyboardInterrupt:
        return 130

    return 0


if __name__ == "__main__":
    sys.exit(main())
