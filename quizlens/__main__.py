"""
Module entry point for: python -m quizlens

Allows running the scanner directly as a module:
    python -m quizlens scan <image_or_dir>... [options]
    python -m quizlens clean [text_file]
    python -m quizlens detect [text_file]
"""

from .cli import cli


def main():
    cli()


if __name__ == "__main__":
    main()
