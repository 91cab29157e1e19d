"""Schema definitions for DDEX ingest."""

from .delivery import MessageKind, ParsedDelivery, SchemaGeneration
from .release import (
    Contributor,
    CopyrightLine,
    Deal,
    FollowGatedDeal,
    FreeDeal,
    Image,
    NFTGatedDeal,
    PayGatedDeal,
    PurgeRelease,
    Release,
    ReleaseIds,
    Resource,
    RightsController,
    SoundRecording,
    TipGatedDeal,
)
from .rows import AssetRow, ClearanceRow, ReleaseRow, ReleaseStatus, UserRow, XmlRow
from .source import AcknowledgementConfig, SourceConfig, SourcesFile

__all__ = [
    "AcknowledgementConfig",
    "AssetRow",
    "ClearanceRow",
    "Contributor",
    "CopyrightLine",
    "Deal",
    "FollowGatedDeal",
    "FreeDeal",
    "Image",
    "MessageKind",
    "NFTGatedDeal",
    "ParsedDelivery",
    "PayGatedDeal",
    "PurgeRelease",
    "Release",
    "ReleaseIds",
    "ReleaseRow",
    "ReleaseStatus",
    "Resource",
    "RightsController",
    "SchemaGeneration",
    "SoundRecording",
    "SourceConfig",
    "SourcesFile",
    "TipGatedDeal",
    "UserRow",
    "XmlRow",
]
