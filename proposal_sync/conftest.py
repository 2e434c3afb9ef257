"""Shared fixtures: an upstream README and an in-memory GitHub fetcher."""

from __future__ import annotations

import asyncio
import logging
from typing import Dict, List, Optional, Tuple

import pytest

from proposal_sync.errors import RemoteFetchError
from proposal_sync.models import RepoMetadata

README = """\
# ECMAScript proposals

## Active proposals

### Stage 3

| Proposal | Author | Champion | Tests | <sub>Last Presented</sub> |
|----------|--------|----------|-------|---------------------------|
| [`Array.prototype.at`][at] | Shu-yu Guo<br />Tab Atkins | Shu-yu Guo | [:question:][at-tests] | <sub>[December&#xA0;2019][at-notes]</sub> |
| [Temporal][temporal] | Maggie Pint<br />Philipp Dunkel | Philipp Dunkel<br />Ujjwal Sharma | none yet | <sub>September&#xA0;2020</sub> |

### Stage 2

| Proposal | Author | Champion | <sub>Last Presented</sub> |
|----------|--------|----------|---------------------------|
| [Decorators][decorators] | Daniel Ehrenberg | Kristen Hewell Garrett | <sub>January&#xA0;2022</sub> |

[at]: https://github.com/tc39/proposal-relative-indexing-method/
[at-tests]: https://github.com/tc39/test262/issues/2222
[at-notes]: https://github.com/tc39/notes/blob/master/meetings/2019-12/december-4.md
[temporal]: https://github.com/tc39/proposal-temporal
[decorators]: https://github.com/tc39/proposal-decorators
"""

AT_README = """\
# Relative indexing

```js
let arr = [1, 2, 3];
```

Usage:

```js
arr.at(-1); // 3
```
"""

TEMPORAL_README = """\
# Temporal

No examples yet.
"""


class FakeFetcher:
    """In-memory stand-in for GitHubFetcher that records every call."""

    def __init__(
        self,
        files: Optional[Dict[Tuple[str, str, str], str]] = None,
        metadata: Optional[Dict[Tuple[str, str], RepoMetadata]] = None,
        delays: Optional[Dict[str, float]] = None,
    ):
        self.files = dict(files or {})
        self.metadata = dict(metadata or {})
        self.delays = dict(delays or {})
        self.failures: Dict[Tuple[str, str], Exception] = {}
        self.calls: List[Tuple[str, ...]] = []

    async def fetch_file_contents(self, owner: str, repo: str, path: str) -> str:
        self.calls.append(("file", owner, repo, path))
        await asyncio.sleep(self.delays.get(repo, 0))
        try:
            return self.files[(owner, repo, path)]
        except KeyError:
            raise RemoteFetchError(f"Not found: {owner}/{repo}/{path}", path, 404) from None

    async def fetch_metadata(self, owner: str, repo: str) -> RepoMetadata:
        self.calls.append(("metadata", owner, repo))
        await asyncio.sleep(self.delays.get(repo, 0))
        if (owner, repo) in self.failures:
            raise self.failures[(owner, repo)]
        try:
            return self.metadata[(owner, repo)]
        except KeyError:
            raise RemoteFetchError(f"Not found: {owner}/{repo}", repo, 404) from None

    def calls_for(self, repo: str) -> List[Tuple[str, ...]]:
        return [call for call in self.calls if call[2] == repo]


@pytest.fixture(autouse=True)
def _reset_warning_capture():
    """Undo logging.captureWarnings set by a test so it cannot leak into the next."""
    yield
    logging.captureWarnings(False)


@pytest.fixture
def readme() -> str:
    return README


@pytest.fixture
def fake_fetcher() -> FakeFetcher:
    return FakeFetcher(
        files={
            ("tc39", "proposals", "README.md"): README,
            ("tc39", "proposal-relative-indexing-method", "README.md"): AT_README,
            ("tc39", "proposal-temporal", "README.md"): TEMPORAL_README,
        },
        metadata={
            ("tc39", "proposal-relative-indexing-method"): RepoMetadata(
                description="A TC39 proposal to add an .at() method to all the basic indexable classes",
                files=["README.md", "spec.html", "polyfill.js"],
            ),
            ("tc39", "proposal-temporal"): RepoMetadata(
                description="Provides standard objects and functions for working with dates and times.",
                files=["README.md", "spec/index.html", "polyfill"],
            ),
        },
    )
