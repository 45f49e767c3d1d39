"""Main entry point when executing ocilaunch as a package.

This allows running the package using python -m ocilaunch.
"""

from ocilaunch.main import cli_entry_point

if __name__ == "__main__":
    cli_entry_point()
