"""Downloader service package.

Re-exports the public symbols::

    from nostr_writer.services.downloader import BulkDownloadReport, Downloader
"""

from .service import Downloader
from .utils import BulkDownloadReport, DownloadFailure, SavedArticle, article_path


__all__ = [
    "BulkDownloadReport",
    "DownloadFailure",
    "Downloader",
    "SavedArticle",
    "article_path",
]
