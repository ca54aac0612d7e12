#!/usr/bin/env python3
"""
MangaMapper - Main Entry Point

Maps AniList manga IDs onto manga reading sites and extracts chapter
page images.

Usage:
    python main.py providers
    python main.py search mangapark "Solo Leveling"
    python main.py chapters mangapark 105398 --json
    python main.py pages mangapark 105398-en-solo-leveling/1234567-chapter-1
    python main.py info 105398

Settings are read from config/settings.yaml (or the file named by
MANGAMAPPER_CONFIG); see config/settings.yaml for the available keys.
"""
import sys
from pathlib import Path

# Add current directory to path for imports
current_dir = Path(__file__).parent
sys.path.insert(0, str(current_dir))

from cli.app import app


def main():
    """Main entry point for MangaMapper."""
    app()


if __name__ == "__main__":
    main()
