"""Allow ``python -m reciplan``."""

from reciplan.cli.main import main

if __name__ == "__main__":
    main()
