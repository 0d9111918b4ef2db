"""
File Mover - GUI Application Entry Point

Entry point for the windowed executable (the `file-mover-gui` script).
"""

import sys


def main() -> int:
    """
    Main entry point for the GUI application.

    Returns:
        int: Exit code (0 for success)
    """
    from .gui import main as gui_main
    gui_main()

    return 0


if __name__ == "__main__":
    sys.exit(main())
