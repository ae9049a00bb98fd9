"""Allow ``python -m acmer53``."""

from acmer53.cli.main import main

if __name__ == "__main__":
    main()
