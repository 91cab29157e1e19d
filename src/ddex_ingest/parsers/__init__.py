"""Parsers for DDEX ERN delivery documents."""

from .delivery import DeliveryParser, read_message_timestamp
from .ern3 import ERN3Parser
from .ern4 import ERN4Parser
from .genres import Genre, resolve_genre
from .parser import ReleaseParser

__all__ = [
    "DeliveryParser",
    "ReleaseParser",
    "ERN3Parser",
    "ERN4Parser",
    "Genre",
    "resolve_genre",
    "read_message_timestamp",
]
