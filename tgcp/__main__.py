"""Allow ``python -m tgcp``."""

from tgcp.cli.app import cli_entry

if __name__ == "__main__":
    cli_entry()
