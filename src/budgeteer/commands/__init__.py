"""Built-in sub-commands for the budgeteer CLI.

Each module exposes a Typer sub-application registered by
:func:`budgeteer.app.main`:

- :mod:`~budgeteer.commands.keys` -- lifecycle operations on API keys.
- :mod:`~budgeteer.commands.config` -- view and modify the stored config.
"""
