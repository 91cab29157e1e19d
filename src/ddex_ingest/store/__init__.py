"""SQLite-backed release catalog."""

from .asset_repo import AssetRepo
from .clearance_repo import ClearanceRepo
from .cursor_repo import CursorRepo
from .database import Database
from .release_repo import PUBLISH_RETRY_LIMIT, ReleaseRepo
from .user_repo import UserRepo
from .xml_repo import XmlRepo


class Catalog:
    """All repositories over one database."""

    def __init__(self, db: Database):
        self.db = db
        self.assets = AssetRepo(db)
        self.releases = ReleaseRepo(db, self.assets)
        self.xmls = XmlRepo(db)
        self.cursors = CursorRepo(db)
        self.users = UserRepo(db)
        self.clearance = ClearanceRepo(db)


__all__ = [
    "Catalog",
    "Database",
    "ReleaseRepo",
    "AssetRepo",
    "XmlRepo",
    "CursorRepo",
    "UserRepo",
    "ClearanceRepo",
    "PUBLISH_RETRY_LIMIT",
]
