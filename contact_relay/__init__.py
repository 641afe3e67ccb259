"""Contact form relay: validates web contact submissions and forwards them by email."""

__version__ = "1.0.0"
