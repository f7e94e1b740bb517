"""Entry point for python -m command_gateway."""

from .cli import main

if __name__ == "__main__":
    main()
