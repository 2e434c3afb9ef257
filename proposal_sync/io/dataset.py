"""Reader for the local proposal dataset (``_data/stage3.yml``)."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

import yaml

from proposal_sync.errors import DatasetFormatError

logger = logging.getLogger(__name__)


class ProposalDataset:
    """Records from the previous run, looked up by proposal id.

    When the file lists an id more than once the last entry wins, matching
    what a reader of the YAML would see after a later manual edit.
    """

    def __init__(self, records: List[Dict[str, Any]]):
        self.records = records
        self._by_id: Dict[str, Dict[str, Any]] = {}
        for record in records:
            if "id" in record:
                self._by_id[str(record["id"])] = record

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self) -> Iterator[Dict[str, Any]]:
        return iter(self.records)

    def get(self, proposal_id: str) -> Optional[Dict[str, Any]]:
        return self._by_id.get(proposal_id)


def load_dataset(path: Path) -> ProposalDataset:
    """Parse the dataset at `path`.

    A missing file yields an empty dataset (first run). Anything other than a
    list of mappings raises DatasetFormatError.
    """
    if not path.exists():
        logger.warning(f"Dataset not found, starting from an empty one: {path}")
        return ProposalDataset([])

    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise DatasetFormatError(f"Could not parse dataset {path}: {e}") from e

    if data is None:
        data = []
    if not isinstance(data, list):
        raise DatasetFormatError(f"Dataset {path} must be a list, got {type(data).__name__}")
    for index, entry in enumerate(data):
        if not isinstance(entry, dict):
            raise DatasetFormatError(
                f"Dataset {path} entry {index} must be a mapping, got {type(entry).__name__}"
            )

    logger.info(f"Loaded {len(data)} proposals from {path}")
    return ProposalDataset(data)
