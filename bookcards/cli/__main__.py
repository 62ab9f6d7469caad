"""Allow ``python -m bookcards.cli`` execution."""

from bookcards.cli.main import main

main()
