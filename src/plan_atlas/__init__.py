"""Derive change overviews, ownership maps and dependency graphs from Terraform plans."""

__version__ = "0.1.0"
