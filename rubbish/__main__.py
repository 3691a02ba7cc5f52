"""Allow `python -m rubbish`."""

from ._cli import main

main()
