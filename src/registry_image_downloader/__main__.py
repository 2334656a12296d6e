"""Allow running as ``python -m registry_image_downloader``."""

import sys

from .cli import main

if __name__ == "__main__":
    sys.exit(main())
