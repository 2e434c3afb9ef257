"""Synchronize the local stage 3 proposal dataset with upstream GitHub data."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Iterable, List, Optional

PROJECT_ROOT = Path(__file__).resolve().parent
PARENT_ROOT = PROJECT_ROOT.parent

if str(PARENT_ROOT) not in sys.path:
    sys.path.insert(0, str(PARENT_ROOT))

from proposal_sync import config  # noqa: E402
from proposal_sync.assembler import RecordAssembler  # noqa: E402
from proposal_sync.errors import ProposalSyncError  # noqa: E402
from proposal_sync.io import dataset, save_yaml  # noqa: E402
from proposal_sync.models import ProposalRecord  # noqa: E402
from proposal_sync.resolvers import Fetcher, FieldResolvers  # noqa: E402
from proposal_sync.scraper import markdown_table  # noqa: E402
from proposal_sync.scraper.github_fetcher import GitHubFetcher  # noqa: E402
from proposal_sync.scraper.link_refs import LinkReferences  # noqa: E402

logger = logging.getLogger(__name__)


def install_loop_logging(loop: asyncio.AbstractEventLoop, log: logging.Logger) -> None:
    """Log errors from tasks nobody awaited instead of printing them to stderr."""

    def handle_exception(_loop: asyncio.AbstractEventLoop, context: dict) -> None:
        exc = context.get("exception")
        log.error(f"Unhandled error in event loop: {context.get('message')}", exc_info=exc)

    loop.set_exception_handler(handle_exception)


async def run_sync(
    settings: config.SyncSettings,
    fetcher: Optional[Fetcher] = None,
    log: Optional[logging.Logger] = None,
) -> List[ProposalRecord]:
    """Fetch, parse and resolve the stage table, then rewrite the dataset.

    Nothing is written unless every row resolved.
    """
    log = log or logger
    settings.validate()
    install_loop_logging(asyncio.get_running_loop(), log)

    owned = None
    if fetcher is None:
        fetcher = owned = GitHubFetcher(logger=log)

    try:
        readme = await fetcher.fetch_file_contents(settings.owner, settings.repo, settings.readme_path)
        rows = markdown_table.extract_stage_table(readme, settings.stage_heading, settings.next_heading)
        log.info(f"Found {len(rows)} proposals under {settings.stage_heading!r}")

        refs = LinkReferences.from_markdown(readme)
        existing = dataset.load_dataset(settings.data_file)
        resolvers = FieldResolvers(fetcher, existing, owner=settings.proposal_owner, logger=log)
        assembler = RecordAssembler(
            refs,
            resolvers,
            presentation_policy=settings.presentation_policy,
            duplicate_policy=settings.duplicate_policy,
            logger=log,
        )
        records = await assembler.build_records(rows)
    finally:
        if owned is not None:
            owned.close()

    if settings.dry_run:
        print(save_yaml.dump_records(records), end="")
    else:
        output_path = save_yaml.save_records(records, settings.data_file)
        log.info(f"Saved {len(records)} proposals to {output_path}")
    return records


def parse_args(argv: Iterable[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--data-file",
        type=Path,
        default=config.DATA_FILE,
        help="Dataset to seed from and rewrite.",
    )
    parser.add_argument("--owner", default=config.UPSTREAM_OWNER, help="Owner of the proposals repo.")
    parser.add_argument("--repo", default=config.UPSTREAM_REPO, help="Repo holding the README.")
    parser.add_argument("--stage-heading", default=config.STAGE_HEADING)
    parser.add_argument("--next-heading", default=config.NEXT_STAGE_HEADING)
    parser.add_argument(
        "--presentations",
        choices=config.PRESENTATION_POLICIES,
        default=config.DEFAULT_PRESENTATION_POLICY,
        help="Replace presentation history each run, or merge it with the stored one.",
    )
    parser.add_argument(
        "--duplicates",
        choices=config.DUPLICATE_POLICIES,
        default=config.DEFAULT_DUPLICATE_POLICY,
        help="What to do when the table lists a proposal twice.",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print the YAML instead of writing the dataset.",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")
    return parser.parse_args(argv)


def configure_logging(verbose: bool = False) -> None:
    """Root logging setup; Python warnings are logged at WARNING."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    logging.captureWarnings(True)


def main(argv: Iterable[str] | None = None) -> int:
    args = parse_args(argv)

    configure_logging(args.verbose)

    settings = config.SyncSettings(
        data_file=args.data_file,
        owner=args.owner,
        repo=args.repo,
        proposal_owner=args.owner,
        stage_heading=args.stage_heading,
        next_heading=args.next_heading,
        presentation_policy=args.presentations,
        duplicate_policy=args.duplicates,
        dry_run=args.dry_run,
    )

    try:
        asyncio.run(run_sync(settings))
    except ProposalSyncError as e:
        logger.error(f"Sync aborted, {settings.data_file} left unchanged: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
