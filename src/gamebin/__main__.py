"""Entry point for 'python -m gamebin' command.

This module allows the GameBin CLI to be invoked using
'python -m gamebin'.
"""

from gamebin.cli import main

if __name__ == "__main__":
    main()
