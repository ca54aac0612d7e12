"""
Utility functions for MangaMapper.

This module contains small text and URL helpers shared by the site
adapters.
"""
import re
from typing import Optional
from urllib.parse import urlparse


def clean_text(text: Optional[str]) -> str:
    """Collapse whitespace and strip a scraped string."""
    if not text:
        return ""
    return re.sub(r'\s+', ' ', text).strip()


def extract_chapter_number(title: str) -> str:
    """
    Pull the chapter number out of a chapter title.

    Supports formats like:
    - "Chapter 12", "Ch. 12.5", "ch-12"
    - "Vol.2 Chapter 12: Title"
    - "12" (bare number)

    Args:
        title: Chapter title or URL slug

    Returns:
        Chapter number as a string, or "0" when none is present
    """
    if not title:
        return "0"
    match = re.search(r'(?:chapter|ch)[\s.:\-_]*(\d+(?:\.\d+)?)', title, re.IGNORECASE)
    if match:
        return match.group(1)
    match = re.search(r'(\d+(?:\.\d+)?)', title)
    if match:
        return match.group(1)
    return "0"


def make_url_friendly(text: str) -> str:
    """
    Turn a title into the slug form some sites search by.

    Parenthesised fragments and punctuation are dropped; spaces and
    hyphens become underscores.
    """
    text = re.sub(r'\([^)]*\)', '', text or '')
    text = re.sub(r'[^\w\s-]', '', text)
    text = re.sub(r'[\s\-]+', '_', text.strip())
    return text.strip('_').lower()


def path_segments(url: str) -> list:
    """Non-empty path segments of a URL (or of a bare path)."""
    path = urlparse(url).path if '://' in url else url.split('?', 1)[0]
    return [part for part in path.strip('/').split('/') if part]

