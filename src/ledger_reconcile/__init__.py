"""Mark plain-text ledger transactions as cleared by matching them to a statement."""

__version__ = "0.1.0"
