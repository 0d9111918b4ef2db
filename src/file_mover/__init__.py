"""
File Mover - Find large files and relocate them safely

A tool for finding files under a source folder and moving a reviewed
selection into a destination folder.

This package provides functionality to:
- Recursively scan a source folder for files (no symlink/junction traversal)
- Filter by extension toggles, a custom extension list and a name substring
- Order results largest-first for review
- Move selected files flat, with their relative structure, or grouped
  under their parent folder name
- Handle naming collisions with " (1)", " (2)" suffixes
- Run scans and moves in the background with progress reporting
- Generate CSV reports of move operations
"""

# Product identity constants
PRODUCT_NAME = "File Mover"
PRODUCT_VERSION = "1.0.0"
PRODUCT_DESCRIPTION = "Find large files and relocate them safely"

__version__ = PRODUCT_VERSION
__author__ = "File Mover Team"
