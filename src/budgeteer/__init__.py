"""budgeteer -- declarative management of API keys on a budget-tracking service.

The package converges remote "API key" records (name, spending budget,
accrued cost, timestamps, secret key) towards a desired description. A host
supplies the desired fields and a persisted identifier; the reconciler
decides which create/read/update/delete calls are needed and returns the
resulting state for the host to persist.

Typical workflow::

    budgeteer keys apply svc-a --budget 1000   # create or adopt, then converge
    budgeteer keys read 7                      # detect drift

Modules:
    app: Typer application and CLI entry point.
    models: Pydantic models for configuration, remote records and resources.
    config: XDG-aware configuration and provider config resolution.
    client: Synchronous and asynchronous HTTP clients for the remote API.
    reconciler: Create/Read/Update/Delete convergence logic.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes following clig.dev conventions.
    output: stdout/stderr formatting system with Rich support.
"""

__version__ = "0.1.0"
