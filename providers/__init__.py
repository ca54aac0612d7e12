"""
Providers package for MangaMapper.

This package contains the site adapters. Adapters are discovered
automatically by the ProviderManager and enabled through
``providers.enabled`` in the configuration.

Example provider file structure:
providers/
  ├── __init__.py          # This file
  ├── mangadex.py          # MangaDex JSON API
  ├── asurascans.py        # Asura Scans
  ├── mangapark.py         # MangaPark
  ├── mangabuddy.py        # MangaBuddy
  └── mangakakalot.py      # MangaKakalot
"""
# ProviderManager scans this directory for .py files and loads them

__all__ = []  # Providers register themselves automatically
