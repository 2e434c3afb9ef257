"""Tests for the per-field resolvers."""

from __future__ import annotations

import asyncio

import pytest

from proposal_sync.conftest import FakeFetcher
from proposal_sync.io.dataset import ProposalDataset
from proposal_sync.models import Presentation, RepoMetadata
from proposal_sync.resolvers import (
    CachedFieldResolver,
    FieldResolvers,
    extract_last_code_block,
    md_code_spans_to_html,
    resolve_identifier,
    resolve_presentation,
    resolve_tests,
)
from proposal_sync.scraper.link_refs import LinkReferences

REFS_DOC = """\
[at]: https://github.com/tc39/proposal-relative-indexing-method/
[Temporal]: https://github.com/tc39/Proposal-Temporal
[some-notes]: https://github.com/tc39/notes/blob/main/meetings/2019-12/december-4.md
[foo-tests]: https://github.com/tc39/test262/tree/main/test/built-ins/Temporal
"""


@pytest.fixture
def refs():
    return LinkReferences.from_markdown(REFS_DOC)


def make_resolvers(fetcher, records=None):
    return FieldResolvers(fetcher, ProposalDataset(records or []))


def test_identifier_drops_trailing_slash(refs):
    assert resolve_identifier(refs, "at") == "proposal-relative-indexing-method"


def test_identifier_is_lower_cased_and_idempotent(refs):
    first = resolve_identifier(refs, "temporal")
    assert first == "proposal-temporal"
    assert resolve_identifier(refs, "temporal") == first


def test_presentation_with_reference_link(refs):
    presentation = resolve_presentation(refs, "<sub>[December 2019][some-notes]</sub>")

    assert presentation == Presentation(
        date="December 2019",
        url="https://github.com/tc39/notes/blob/main/meetings/2019-12/december-4.md",
    )


def test_presentation_with_bare_date(refs):
    assert resolve_presentation(refs, "<sub>September 2020</sub>") == Presentation(
        date="September 2020", url=None
    )


def test_tests_field(refs):
    assert resolve_tests(refs, "[Tests][foo-tests]") == [
        "https://github.com/tc39/test262/tree/main/test/built-ins/Temporal"
    ]
    assert resolve_tests(refs, "none yet") is None
    assert resolve_tests(refs, None) is None


def test_extract_last_code_block():
    readme = "```js\nfirst();\n```\n\ntext\n\n```javascript\nsecond();\nthird();\n```\n"

    assert extract_last_code_block(readme) == "second();\nthird();\n"
    assert extract_last_code_block("# no code here\n") is None


def test_md_code_spans_to_html():
    assert md_code_spans_to_html("`Array.prototype.at`") == "<code>Array.prototype.at</code>"
    assert md_code_spans_to_html("Import `defer` proposal") == "Import <code>defer</code> proposal"
    assert md_code_spans_to_html("Temporal") == "Temporal"


@pytest.mark.parametrize("stored", ["const x = 1;\n", None])
def test_stored_example_is_used_without_fetching(stored):
    fetcher = FakeFetcher()
    resolvers = make_resolvers(fetcher, [{"id": "proposal-x", "example": stored}])

    assert asyncio.run(resolvers.resolve_code_sample("proposal-x")) == stored
    assert fetcher.calls == []


def test_known_proposal_without_example_stays_absent():
    fetcher = FakeFetcher()
    resolvers = make_resolvers(fetcher, [{"id": "proposal-x", "title": "X"}])

    assert asyncio.run(resolvers.resolve_code_sample("proposal-x")) is None
    assert fetcher.calls == []


def test_new_proposal_example_comes_from_readme(fake_fetcher):
    resolvers = make_resolvers(fake_fetcher)

    example = asyncio.run(resolvers.resolve_code_sample("proposal-relative-indexing-method"))

    assert example == "arr.at(-1); // 3\n"
    assert fake_fetcher.calls == [
        ("file", "tc39", "proposal-relative-indexing-method", "README.md")
    ]


def test_new_proposal_without_code_blocks(fake_fetcher):
    resolvers = make_resolvers(fake_fetcher)

    assert asyncio.run(resolvers.resolve_code_sample("proposal-temporal")) is None


@pytest.mark.parametrize("stored", ["Hand written.", "", None])
def test_stored_description_wins(fake_fetcher, stored):
    resolvers = make_resolvers(fake_fetcher, [{"id": "proposal-temporal", "description": stored}])

    assert asyncio.run(resolvers.resolve_description("proposal-temporal")) == stored
    assert fake_fetcher.calls == []


@pytest.mark.parametrize("records", [[], [{"id": "proposal-temporal"}]])
def test_description_falls_back_to_repository(fake_fetcher, records):
    resolvers = make_resolvers(fake_fetcher, records)

    description = asyncio.run(resolvers.resolve_description("proposal-temporal"))

    assert description == "Provides standard objects and functions for working with dates and times."


@pytest.mark.parametrize(
    "files, expected",
    [
        (["README.md", "spec.html"], True),
        (["README.md", "spec/index.html"], False),
        (["README.md", "docs/spec.html"], False),
        ([], False),
    ],
)
def test_has_specification(files, expected):
    fetcher = FakeFetcher(metadata={("tc39", "proposal-x"): RepoMetadata(description=None, files=files)})
    resolvers = make_resolvers(fetcher)

    assert asyncio.run(resolvers.resolve_has_specification("proposal-x")) is expected


def test_cached_lookup_fetches_missing_field_only_when_asked():
    resolver = CachedFieldResolver(ProposalDataset([{"id": "p"}]))

    async def fallback():
        return "remote"

    assert asyncio.run(resolver.lookup("p", "description", fallback)) is None
    assert (
        asyncio.run(resolver.lookup("p", "description", fallback, fetch_when_field_missing=True))
        == "remote"
    )
    assert asyncio.run(resolver.lookup("unknown", "description", fallback)) == "remote"


def test_stored_presentations():
    resolvers = make_resolvers(
        FakeFetcher(),
        [{"id": "p", "presented": [{"date": "June 2021", "url": "https://example.com/june"}]}],
    )

    assert resolvers.stored_presentations("p") == [
        Presentation(date="June 2021", url="https://example.com/june")
    ]
    assert resolvers.stored_presentations("unknown") == []


def test_stored_null_fields():
    resolvers = make_resolvers(
        FakeFetcher(), [{"id": "p", "description": None, "example": "x = 1\n"}]
    )

    assert resolvers.stored_null_fields("p", ("description", "example")) == ("description",)
    assert resolvers.stored_null_fields("unknown", ("description", "example")) == ()
