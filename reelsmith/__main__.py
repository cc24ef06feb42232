"""Package entry point for ``python -m reelsmith``."""

from reelsmith.cli import main

if __name__ == "__main__":
    main()
