"""bangfix: insert non-null assertions until tsc stops complaining about undefined."""

__version__ = "0.3.0"
