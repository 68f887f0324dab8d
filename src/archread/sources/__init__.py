from .archive import ArchiveClient, PageResponse, PendingPage, completed

__all__ = ["ArchiveClient", "PageResponse", "PendingPage", "completed"]
