"""Allows ``python -m flameview``."""

from flameview.cli import main

if __name__ == "__main__":
    main()
