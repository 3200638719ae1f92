"""Thin runnable wrapper: ``python -m contacts_cli``."""

from contacts_cli.tui_app import main


if __name__ == "__main__":
    raise SystemExit(main())
