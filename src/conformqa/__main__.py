"""conformqa CLI entry point.

This module enables running conformqa as:
    python -m conformqa <command>
"""

from conformqa.cli import main

if __name__ == "__main__":
    main()
