"""Run strip-ansi-escapes with `python -m strip_ansi_escapes`."""

from strip_ansi_escapes.cli import app

app(prog_name="strip-ansi-escapes")
