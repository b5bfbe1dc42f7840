"""
ab - AssetBuilder command-line interface.

Usage:
    ab build
    ab resolve js app
    ab render css --tags
    ab clear-cache --kind js --older-than 3600
    ab inspect group css theme
    ab inspect manifest
"""

__version__ = "1.0.0"
__cli_name__ = "ab"


def main():
    """Wrapper to avoid eager import of __main__ which causes warnings with -m."""
    from .__main__ import main as _main
    return _main()
