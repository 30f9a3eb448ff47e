"""Infra layer utilities (registry storage, archive download)."""

from .downloader import ArchiveDownloader
from .storage import PageRegistry

__all__ = ["ArchiveDownloader", "PageRegistry"]
