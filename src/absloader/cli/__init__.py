"""
absloader Command-Line Interface
================================

This package provides the command-line tools:

- **txt2abs**: Convert a text description into an absolute-format image
- **absdump**: List and verify the records of an absolute-format image

Each tool is implemented as a Click-based CLI application.
"""

__all__ = ["txt2abs", "absdump"]
