"""SecureLearn - security awareness training API."""

__version__ = "0.1.0"
