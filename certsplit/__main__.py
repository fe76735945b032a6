"""
Module entry point for: python -m certsplit

Allows running the splitter directly as a module:
    python -m certsplit split <pdf_path> [options]
    python -m certsplit blocks <pdf_path>
    python -m certsplit info <pdf_path>
"""

from .cli import cli


def main():
    cli()


if __name__ == "__main__":
    main()
