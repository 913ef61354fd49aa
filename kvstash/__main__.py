"""Main entry point when executing kvstash as a package.

This allows running the package using python -m kvstash.
"""

from kvstash.main import cli_entry_point

if __name__ == "__main__":
    cli_entry_point()
