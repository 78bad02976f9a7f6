"""app-signing: signing-credential resolution for remote mobile builds."""

__version__ = "0.3.0"
