"""Per-field resolution of proposal metadata.

Fields that a maintainer may curate by hand (``example``, ``description``)
go through CachedFieldResolver: a value already present in the local
dataset wins over anything GitHub says, including an explicitly empty one.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Awaitable, Callable, List, Optional, Protocol, Sequence, Tuple

from proposal_sync import config
from proposal_sync.io.dataset import ProposalDataset
from proposal_sync.models import Presentation, RepoMetadata
from proposal_sync.scraper.link_refs import LinkReferences, parse_full_reference_link
from proposal_sync.scraper.markdown_table import sanitize_html

logger = logging.getLogger(__name__)

_CODE_BLOCK = re.compile(r"^```[\w+#.-]*[ \t]*\n(?P<body>.*?\n)```[ \t]*$", re.MULTILINE | re.DOTALL)
_CODE_SPAN = re.compile(r"(`+)(?P<code>.+?)\1", re.DOTALL)


class Fetcher(Protocol):
    async def fetch_file_contents(self, owner: str, repo: str, path: str) -> str: ...

    async def fetch_metadata(self, owner: str, repo: str) -> RepoMetadata: ...


def resolve_identifier(refs: LinkReferences, label_prefix: str) -> str:
    """Proposal id: last path segment of the label's URL, lower-cased."""
    url = refs.resolve(label_prefix)
    if url.endswith("/"):
        url = url[:-1]
    return url.split("/")[-1].lower()


def extract_last_code_block(markdown: str) -> Optional[str]:
    """Body of the last fenced code block in `markdown`, fences removed."""
    blocks = [match.group("body") for match in _CODE_BLOCK.finditer(markdown)]
    if not blocks:
        return None
    return blocks[-1]


def md_code_spans_to_html(text: str) -> str:
    """Convert markdown code spans to ``<code>`` elements."""
    return _CODE_SPAN.sub(lambda match: f"<code>{match.group('code').strip()}</code>", text)


def resolve_presentation(refs: LinkReferences, cell: str) -> Presentation:
    """Build a Presentation from a "last presented" cell.

    The cell is either a full reference link to the meeting notes, e.g.
    ``<sub>[December 2019][nonblocking-notes]</sub>``, or just a date, e.g.
    ``<sub>September 2020</sub>``.
    """
    value = sanitize_html(cell)
    link = parse_full_reference_link(value)
    if link is None:
        return Presentation(date=value, url=None)
    return Presentation(date=link.text, url=refs.resolve(link.label))


def resolve_tests(refs: LinkReferences, cell: Optional[str]) -> Optional[List[str]]:
    """A single-item list with the test suite URL, or None for plain-text cells."""
    link = parse_full_reference_link(cell)
    if link is None:
        return None
    return [refs.resolve(link.label)]


class CachedFieldResolver:
    """Look a field up in the local dataset, falling back to a remote fetch."""

    def __init__(self, dataset: ProposalDataset, logger: Optional[logging.Logger] = None):
        self.dataset = dataset
        self.logger = logger or logging.getLogger(__name__)

    async def lookup(
        self,
        proposal_id: str,
        field: str,
        fallback: Callable[[], Awaitable[Any]],
        *,
        fetch_when_field_missing: bool = False,
    ) -> Any:
        """Return the stored `field` of `proposal_id`, or await `fallback`.

        With a stored record but no `field` key, the result is None unless
        `fetch_when_field_missing` is set.
        """
        record = self.dataset.get(proposal_id)
        if record is not None:
            if field in record:
                self.logger.debug(f"Using stored {field} for {proposal_id}")
                return record[field]
            if not fetch_when_field_missing:
                return None
        return await fallback()


class FieldResolvers:
    """Resolvers that need the dataset or GitHub, bound to one sync run."""

    def __init__(
        self,
        fetcher: Fetcher,
        dataset: ProposalDataset,
        owner: str = config.PROPOSAL_OWNER,
        logger: Optional[logging.Logger] = None,
    ):
        self.fetcher = fetcher
        self.dataset = dataset
        self.owner = owner
        self.logger = logger or logging.getLogger(__name__)
        self.cache = CachedFieldResolver(dataset, self.logger)

    async def resolve_code_sample(self, proposal_id: str) -> Optional[str]:
        """Stored example if the proposal is known, else the README's last code block."""

        async def fetch() -> Optional[str]:
            readme = await self.fetcher.fetch_file_contents(
                self.owner, proposal_id, config.PROPOSAL_README
            )
            return extract_last_code_block(readme)

        return await self.cache.lookup(proposal_id, "example", fetch)

    async def resolve_description(self, proposal_id: str) -> Optional[str]:
        async def fetch() -> Optional[str]:
            metadata = await self.fetcher.fetch_metadata(self.owner, proposal_id)
            return metadata.description

        description = await self.cache.lookup(
            proposal_id, "description", fetch, fetch_when_field_missing=True
        )
        self.logger.info(f"Description for “{proposal_id}”: {description}")
        return description

    async def resolve_has_specification(self, proposal_id: str) -> bool:
        metadata = await self.fetcher.fetch_metadata(self.owner, proposal_id)
        return config.SPEC_FILE_NAME in metadata.files

    def stored_null_fields(self, proposal_id: str, fields: Sequence[str]) -> Tuple[str, ...]:
        """Which of `fields` the dataset stores for `proposal_id` as an explicit null."""
        record = self.dataset.get(proposal_id) or {}
        return tuple(name for name in fields if name in record and record[name] is None)

    def stored_presentations(self, proposal_id: str) -> List[Presentation]:
        record = self.dataset.get(proposal_id) or {}
        return [
            Presentation.from_mapping(item)
            for item in record.get("presented") or []
            if isinstance(item, dict)
        ]
