"""Assemble ProposalRecords from stage table rows."""

from __future__ import annotations

import asyncio
import logging
import re
from collections import Counter
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from proposal_sync import config
from proposal_sync.errors import DuplicateProposalError, SyncError, UpstreamShapeError
from proposal_sync.models import Presentation, ProposalRecord, StageTableRow
from proposal_sync.resolvers import (
    FieldResolvers,
    md_code_spans_to_html,
    resolve_identifier,
    resolve_presentation,
    resolve_tests,
)
from proposal_sync.scraper.link_refs import LinkReferences, parse_full_reference_link

logger = logging.getLogger(__name__)

_LINE_BREAK = re.compile(config.LINE_BREAK_PATTERN, re.IGNORECASE)


def split_names(cell: str) -> List[str]:
    """Split an author/champion cell on its line breaks, keeping order."""
    return [name.strip() for name in _LINE_BREAK.split(cell)]


def merge_presentations(
    current: Presentation,
    previous: Sequence[Presentation],
) -> List[Presentation]:
    """Current presentation first, then earlier ones not already listed."""
    merged = [current]
    for item in previous:
        if item not in merged:
            merged.append(item)
    return merged


def apply_duplicate_policy(records: List[ProposalRecord], policy: str) -> List[ProposalRecord]:
    counts = Counter(record.id for record in records)
    duplicates = sorted(proposal_id for proposal_id, count in counts.items() if count > 1)
    if not duplicates:
        return records

    if policy == "reject":
        raise DuplicateProposalError(
            f"Stage table lists duplicate proposals: {', '.join(duplicates)}", duplicates
        )
    logger.warning(f"Duplicate proposals in stage table: {', '.join(duplicates)} (policy: {policy})")
    if policy == "keep-all":
        return records

    # last-wins: the later row replaces the earlier one in the earlier row's position.
    latest: Dict[str, ProposalRecord] = {record.id: record for record in records}
    result: List[ProposalRecord] = []
    seen = set()
    for record in records:
        if record.id in seen:
            continue
        seen.add(record.id)
        result.append(latest[record.id])
    return result


class RecordAssembler:
    """Turns stage table rows into ProposalRecords."""

    def __init__(
        self,
        refs: LinkReferences,
        resolvers: FieldResolvers,
        presentation_policy: str = config.DEFAULT_PRESENTATION_POLICY,
        duplicate_policy: str = config.DEFAULT_DUPLICATE_POLICY,
        logger: Optional[logging.Logger] = None,
    ):
        self.refs = refs
        self.resolvers = resolvers
        self.presentation_policy = presentation_policy
        self.duplicate_policy = duplicate_policy
        self.logger = logger or logging.getLogger(__name__)

    async def build_record(self, row: StageTableRow) -> ProposalRecord:
        link = parse_full_reference_link(row.proposal)
        if link is None:
            raise UpstreamShapeError(f"Proposal cell is not a reference link: {row.proposal!r}")

        proposal_id = resolve_identifier(self.refs, link.label)
        # All three resolvers settle before the row fails.
        results = await asyncio.gather(
            self.resolvers.resolve_description(proposal_id),
            self.resolvers.resolve_code_sample(proposal_id),
            self.resolvers.resolve_has_specification(proposal_id),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, BaseException):
                raise result
        description, example, has_specification = results

        presentation = resolve_presentation(self.refs, row.last_presented)
        if self.presentation_policy == "merge":
            presented = merge_presentations(
                presentation, self.resolvers.stored_presentations(proposal_id)
            )
        else:
            presented = [presentation]

        return ProposalRecord(
            id=proposal_id,
            title=md_code_spans_to_html(link.text),
            example=example,
            presented=presented,
            has_specification=has_specification,
            description=description,
            authors=split_names(row.author),
            champions=split_names(row.champion),
            tests=resolve_tests(self.refs, row.tests),
            null_fields=self.resolvers.stored_null_fields(proposal_id, config.CURATED_FIELDS),
        )

    async def build_records(self, rows: Iterable[Mapping[str, str]]) -> List[ProposalRecord]:
        """Resolve every row concurrently; fail if any row failed.

        All rows are allowed to settle so every failure gets logged, and
        results keep the order of the table.
        """
        table_rows = [StageTableRow.from_mapping(row) for row in rows]
        results = await asyncio.gather(
            *(self.build_record(row) for row in table_rows),
            return_exceptions=True,
        )

        failures: List[BaseException] = []
        records: List[ProposalRecord] = []
        for row, result in zip(table_rows, results):
            if isinstance(result, BaseException):
                self.logger.error(f"Failed to resolve {row.proposal!r}: {result}")
                failures.append(result)
            else:
                records.append(result)

        if failures:
            raise SyncError(
                f"{len(failures)} of {len(table_rows)} proposals failed to resolve", failures
            ) from failures[0]

        return apply_duplicate_policy(records, self.duplicate_policy)
