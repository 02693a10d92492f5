"""Command line entry for the two-step location picker."""

from cli.picker import main as run_picker


def main() -> None:
    """Run the CLI picker flow."""
    run_picker()


if __name__ == "__main__":
    main()
