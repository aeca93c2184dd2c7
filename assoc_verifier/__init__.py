"""Associated Accounts (ERC-8092) verifier."""

__version__ = "0.1.0"
