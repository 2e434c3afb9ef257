"""Parsing helpers for the pipe tables in the upstream proposals README."""

from __future__ import annotations

import re
from typing import Callable, Dict, Iterable, List, Optional

from bs4 import BeautifulSoup

from proposal_sync import config
from proposal_sync.errors import UpstreamShapeError

CellTransform = Callable[[str], str]

_DELIMITER_CELL = re.compile(r"^:?-+:?$")
_UNESCAPED_PIPE = re.compile(r"(?<!\\)\|")


def sanitize_html(value: Optional[str], allowed_tags: Iterable[str] = ()) -> str:
    """Strip HTML from `value`, keeping only `allowed_tags` (without attributes)."""
    if not value:
        return ""
    allowed = {tag.lower() for tag in allowed_tags}
    soup = BeautifulSoup(value, "html.parser")
    for tag in soup.find_all(True):
        if tag.name in allowed:
            tag.attrs = {}
        else:
            tag.unwrap()
    return soup.decode().strip()


def normalize_header(value: str) -> str:
    """Turn a header cell such as ``Last Presented`` into ``last_presented``."""
    return sanitize_html(value).strip().lower().replace(" ", "_")


def normalize_cell(value: str) -> str:
    return sanitize_html(value, config.CELL_ALLOWED_TAGS)


def extract_section(document: str, start_marker: str, end_marker: str) -> str:
    """Return the text strictly between `start_marker` and the next `end_marker`."""
    start = document.find(start_marker)
    if start == -1:
        raise UpstreamShapeError(f"Heading {start_marker!r} not found in upstream document")
    start += len(start_marker)
    end = document.find(end_marker, start)
    if end == -1:
        raise UpstreamShapeError(
            f"Heading {end_marker!r} not found after {start_marker!r} in upstream document"
        )
    return document[start:end].strip("\n")


def split_row(line: str) -> List[str]:
    """Split a table line into cells, honouring escaped pipes."""
    text = line.strip()
    if text.startswith("|"):
        text = text[1:]
    if text.endswith("|") and not text.endswith("\\|"):
        text = text[:-1]
    return [cell.strip().replace("\\|", "|") for cell in _UNESCAPED_PIPE.split(text)]


def _is_delimiter_row(cells: List[str]) -> bool:
    return bool(cells) and all(_DELIMITER_CELL.match(cell.replace(" ", "")) for cell in cells)


def parse_table(
    markdown: str,
    cell_transform: CellTransform = normalize_cell,
    header_transform: CellTransform = normalize_header,
) -> List[Dict[str, str]]:
    """Convert a pipe table into one mapping per body row, keyed by header."""
    lines = [line for line in markdown.splitlines() if line.strip().startswith("|")]
    if not lines:
        raise UpstreamShapeError("No markdown table found in the stage section")

    headers = [header_transform(cell) for cell in split_row(lines[0])]
    rows: List[Dict[str, str]] = []
    for line in lines[1:]:
        cells = split_row(line)
        if _is_delimiter_row(cells):
            continue
        cells += [""] * (len(headers) - len(cells))
        rows.append({header: cell_transform(cell) for header, cell in zip(headers, cells)})
    return rows


def extract_stage_table(document: str, start_marker: str, end_marker: str) -> List[Dict[str, str]]:
    """Locate the stage section of `document` and parse its table."""
    return parse_table(extract_section(document, start_marker, end_marker))
