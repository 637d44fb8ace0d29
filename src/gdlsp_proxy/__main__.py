"""CLI entry point for gdlsp-proxy."""

import sys


def main() -> int:
    """Main entry point for gdlsp-proxy CLI."""
    from gdlsp_proxy.cli import run_cli

    return run_cli(sys.argv[1:])


if __name__ == "__main__":
    sys.exit(main())
