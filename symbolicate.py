"""Launcher wrapper to keep a top-level script while code lives in the package.
"""

import sys
import traceback

# Load .env before any crash_symbolicator imports (so CRASH_SYMBOLICATOR_* are set)
from dotenv import load_dotenv

load_dotenv()


def main():
    try:
        from crash_symbolicator.gui import main as _package_main
        _package_main()
    except Exception:
        traceback.print_exc()
        sys.stderr.flush()
        sys.exit(1)


if __name__ == "__main__":
    main()
