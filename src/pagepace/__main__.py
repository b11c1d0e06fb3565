"""Main entry point for the pagepace package."""

from pagepace.planner.cli import main


if __name__ == "__main__":
    main()
