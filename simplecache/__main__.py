"""Main entry point when executing simplecache as a package.

This allows running the package using python -m simplecache.
"""

from simplecache.main import cli_entry_point

if __name__ == "__main__":
    cli_entry_point()
