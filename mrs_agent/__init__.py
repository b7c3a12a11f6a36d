"""Mr S Agent chat core: streaming completions and persisted sessions."""

__version__ = "0.1.0"
