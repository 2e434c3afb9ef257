"""Configuration constants for the stage 3 proposal sync."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

# ---------------------------------------------------------------------------
# Upstream source
# ---------------------------------------------------------------------------

UPSTREAM_OWNER = "tc39"
UPSTREAM_REPO = "proposals"
UPSTREAM_README = "README.md"

# Proposal repositories live under the same organisation as the README.
PROPOSAL_OWNER = UPSTREAM_OWNER
PROPOSAL_README = "README.md"
SPEC_FILE_NAME = "spec.html"

STAGE_HEADING = "### Stage 3"
NEXT_STAGE_HEADING = "### Stage 2"

# ---------------------------------------------------------------------------
# GitHub API
# ---------------------------------------------------------------------------

GITHUB_API_URL = "https://api.github.com"
GITHUB_TOKEN_ENV = "GITHUB_TOKEN"
GITHUB_RAW_MEDIA_TYPE = "application/vnd.github.raw+json"
GITHUB_JSON_MEDIA_TYPE = "application/vnd.github+json"
GITHUB_API_VERSION = "2022-11-28"

REQUEST_USER_AGENT = "proposal-sync (+https://github.com/tc39/proposals)"
REQUEST_TIMEOUT = 30

# ---------------------------------------------------------------------------
# Table parsing
# ---------------------------------------------------------------------------

CELL_ALLOWED_TAGS = ("code", "br")
LINE_BREAK_PATTERN = r"<br\s*/?>"

# ---------------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------------

DATA_DIR = Path("_data")
DATA_FILE = DATA_DIR / "stage3.yml"

RECORD_KEY_ORDER = (
    "id",
    "authors",
    "champions",
    "description",
    "example",
    "has_specification",
    "presented",
    "title",
    "tests",
)

# Hand-curated fields: an explicit null in the dataset is written back as null.
CURATED_FIELDS = ("description", "example")

# ---------------------------------------------------------------------------
# Policies
# ---------------------------------------------------------------------------

PRESENTATION_POLICIES = ("replace", "merge")
DUPLICATE_POLICIES = ("keep-all", "last-wins", "reject")

DEFAULT_PRESENTATION_POLICY = "replace"
DEFAULT_DUPLICATE_POLICY = "keep-all"


@dataclass
class SyncSettings:
    """Per-run settings, seeded from the module defaults."""

    data_file: Path = DATA_FILE
    owner: str = UPSTREAM_OWNER
    repo: str = UPSTREAM_REPO
    readme_path: str = UPSTREAM_README
    proposal_owner: str = PROPOSAL_OWNER
    stage_heading: str = STAGE_HEADING
    next_heading: str = NEXT_STAGE_HEADING
    presentation_policy: str = DEFAULT_PRESENTATION_POLICY
    duplicate_policy: str = DEFAULT_DUPLICATE_POLICY
    dry_run: bool = False

    def validate(self) -> None:
        """Reject policy names the assembler does not know."""
        if self.presentation_policy not in PRESENTATION_POLICIES:
            raise ValueError(f"Unknown presentation policy: {self.presentation_policy}")
        if self.duplicate_policy not in DUPLICATE_POLICIES:
            raise ValueError(f"Unknown duplicate policy: {self.duplicate_policy}")


def github_token() -> Optional[str]:
    """Return the GitHub token from the environment, if any."""
    return os.getenv(GITHUB_TOKEN_ENV) or None
