"""Family share: a small file-sharing web application for a household."""

__version__ = "0.1.0"
