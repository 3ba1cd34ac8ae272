"""Command-line interface package for the asset generator."""

from .app import build_parser, create_service, main, run, save_documents

__all__ = [
    "build_parser",
    "create_service",
    "main",
    "run",
    "save_documents",
]
