"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~budgeteer.exceptions.BudgeteerError` subclass.
Wrapper scripts can inspect the exit code to tell a rejected request from
a network outage without parsing stderr.

Example::

    $ budgeteer keys delete 42
    $ echo $?
    5   # EXIT_REMOTE_REJECTED -- the service refused the deletion
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or missing required parameters."""

EXIT_NOT_FOUND = 4
"""The requested key record does not exist on the service."""

EXIT_REMOTE_REJECTED = 5
"""The remote service answered with an unexpected HTTP status."""

EXIT_TRANSPORT_ERROR = 6
"""A network-level error occurred (timeout, DNS failure, connection refused)."""

EXIT_DECODE_ERROR = 7
"""The remote service returned a body that is not the expected JSON shape."""
