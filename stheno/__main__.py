"""Entry point for the Stheno CLI when running the package directly."""

from .cli import main

if __name__ == "__main__":  # pragma: no cover
    main()
