"""Markdown link reference definitions and full reference links.

A *full reference link* pairs visible link text with a label defined
elsewhere in the document::

    [Temporal][temporal]        <- link text, link label
    ...
    [temporal]: https://github.com/tc39/proposal-temporal

The README is parsed once into a label -> URL map; labels are matched
case-insensitively as in GFM, and the first definition of a label wins.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, Iterator, Optional

from proposal_sync.errors import LinkReferenceError

_DEFINITION = re.compile(r"^ {0,3}\[(?P<label>[^\]]+)\]:\s*(?P<url>\S+)", re.MULTILINE)
_FULL_REFERENCE = re.compile(r"^\[(?P<text>.*)\]\[(?P<label>[^\[\]]*)\]$", re.DOTALL)


@dataclass(frozen=True, slots=True)
class FullReferenceLink:
    text: str
    label: str


def is_full_reference_link(value: Optional[str]) -> bool:
    return bool(value) and value.startswith("[")


def parse_full_reference_link(value: Optional[str]) -> Optional[FullReferenceLink]:
    """Split ``[text][label]`` into its parts, or return None for plain text."""
    if not is_full_reference_link(value):
        return None
    match = _FULL_REFERENCE.match(value.strip())
    if not match:
        return None
    # A collapsed link, [text][], uses its text as the label.
    text = match.group("text")
    return FullReferenceLink(text=text, label=match.group("label") or text)


def _normalize_label(label: str) -> str:
    return " ".join(label.split()).casefold()


class LinkReferences:
    """Lookup table of the link reference definitions in one document."""

    def __init__(self, definitions: Dict[str, str]):
        self._definitions = definitions

    @classmethod
    def from_markdown(cls, document: str) -> "LinkReferences":
        definitions: Dict[str, str] = {}
        for match in _DEFINITION.finditer(document):
            url = match.group("url")
            if url.startswith("<") and url.endswith(">"):
                url = url[1:-1]
            definitions.setdefault(_normalize_label(match.group("label")), url)
        return cls(definitions)

    def __len__(self) -> int:
        return len(self._definitions)

    def __iter__(self) -> Iterator[str]:
        return iter(self._definitions)

    def __contains__(self, label: object) -> bool:
        return isinstance(label, str) and _normalize_label(label) in self._definitions

    def resolve(self, label_prefix: str) -> str:
        """Return the URL of the label equal to, or uniquely starting with, `label_prefix`."""
        key = _normalize_label(label_prefix)
        if key in self._definitions:
            return self._definitions[key]

        candidates = [label for label in self._definitions if label.startswith(key)]
        if len(candidates) == 1:
            return self._definitions[candidates[0]]
        if not candidates:
            raise LinkReferenceError(
                f"No link reference definition for label {label_prefix!r}", label_prefix
            )
        raise LinkReferenceError(
            f"Link label {label_prefix!r} is ambiguous: {', '.join(sorted(candidates))}",
            label_prefix,
            candidates,
        )
