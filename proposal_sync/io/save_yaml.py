"""YAML output helpers for the proposal dataset."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable

import yaml

from proposal_sync.models import ProposalRecord


class ProposalDumper(yaml.SafeDumper):
    pass


def _str_representer(dumper, data):
    if "\n" in data:
        return dumper.represent_scalar("tag:yaml.org,2002:str", data, style="|")
    return dumper.represent_scalar("tag:yaml.org,2002:str", data)


ProposalDumper.add_representer(str, _str_representer)


def dump_records(records: Iterable[ProposalRecord]) -> str:
    """Serialize records to YAML, keeping each record's own key order."""
    return yaml.dump(
        [record.to_dict() for record in records],
        Dumper=ProposalDumper,
        sort_keys=False,
        allow_unicode=True,
        default_flow_style=False,
        width=float("inf"),
    )


def save_records(records: Iterable[ProposalRecord], output_path: Path) -> Path:
    """Replace the dataset at `output_path` with `records` in a single write."""
    text = dump_records(records)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(text, encoding="utf-8")
    return output_path
