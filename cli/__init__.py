"""
CLI package for MangaMapper.

This package contains the Typer command-line interface and its Rich
table rendering. The Typer application itself lives in ``cli.app``.
"""
from .app import build_mapper
from .tables import *

__all__ = ['build_mapper']
