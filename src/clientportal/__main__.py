"""Entry point for 'python -m clientportal' command."""

from clientportal.cli import main

if __name__ == "__main__":
    main()
