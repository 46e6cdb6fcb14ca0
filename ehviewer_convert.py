"""CLI shim -- delegates to ehconvert.cli.main().

Usage:
    python ehviewer_convert.py ~/EhViewer/download
    python ehviewer_convert.py --input ~/EhViewer/download --format 2
"""

from ehconvert.cli import main

if __name__ == "__main__":
    main()
