"""Exception types raised during a proposal sync run."""

from __future__ import annotations

from typing import List, Optional, Sequence


class ProposalSyncError(Exception):
    """Base class for every sync failure."""


class UpstreamShapeError(ProposalSyncError):
    """Raised when the upstream README no longer has the expected structure."""


class LinkReferenceError(UpstreamShapeError):
    """Raised when a link label has no (or more than one) matching definition."""

    def __init__(self, message: str, label: str, candidates: Optional[Sequence[str]] = None):
        super().__init__(message)
        self.label = label
        self.candidates = list(candidates or [])


class RemoteFetchError(ProposalSyncError):
    """Raised when a GitHub request fails."""

    def __init__(self, message: str, url: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class DatasetFormatError(ProposalSyncError):
    """Raised when the local dataset file is not a list of records."""


class DuplicateProposalError(ProposalSyncError):
    """Raised when the stage table lists the same proposal id twice."""

    def __init__(self, message: str, duplicates: Sequence[str]):
        super().__init__(message)
        self.duplicates = list(duplicates)


class SyncError(ProposalSyncError):
    """Raised when one or more table rows failed to resolve."""

    def __init__(self, message: str, failures: List[BaseException]):
        super().__init__(message)
        self.failures = failures
