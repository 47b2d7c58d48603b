"""Entry point for running ridelog as a module.

Usage:
    python -m ridelog [command] [options]
"""

from ridelog.cli import main

if __name__ == "__main__":
    main()
