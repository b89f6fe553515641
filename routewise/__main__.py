"""Main entry point when executing routewise as a package.

This allows running the package using python -m routewise.
"""

from routewise.main import cli_entry_point

if __name__ == "__main__":
    cli_entry_point()
