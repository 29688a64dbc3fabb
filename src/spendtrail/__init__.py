"""spendtrail: bank statement import with format detection and categorization rules."""

__version__ = "0.1.0"


def __getattr__(name):
    # Deferred so that importing the domain layer does not load click
    if name == "main":
        from spendtrail.cli.main import main

        return main
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
