"""
Bundle caching, unpacking, parsing and the resulting dataset.
"""

from .archive import ArchiveError, BundleArchive, CorruptArchiveError, MissingMemberError
from .cache import BundleCache, CacheError
from .client import BestChange
from .models import (
    Currency,
    Dataset,
    Exchanger,
    MemberStats,
    Metadata,
    ParseStats,
    Rate,
    RecordKind,
)
from .parsers import MalformedRowError, ParseError, UnrecognizedDateError
from .pipeline import BundlePipeline, PipelineError, PipelineState, PipelineStateError

__all__ = [
    "ArchiveError",
    "BundleArchive",
    "CorruptArchiveError",
    "MissingMemberError",
    "BundleCache",
    "CacheError",
    "BestChange",
    "Currency",
    "Dataset",
    "Exchanger",
    "MemberStats",
    "Metadata",
    "ParseStats",
    "Rate",
    "RecordKind",
    "MalformedRowError",
    "ParseError",
    "UnrecognizedDateError",
    "BundlePipeline",
    "PipelineError",
    "PipelineState",
    "PipelineStateError",
]
