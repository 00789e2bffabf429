"""Entry point for ``python -m dzslicer``."""

from dzslicer.slicer.__main__ import main

if __name__ == "__main__":
    main()
