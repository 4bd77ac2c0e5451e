"""Allow running the CLI with ``python -m copilot``."""

from copilot.app.main import main

if __name__ == "__main__":
    main()
