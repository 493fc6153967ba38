"""gorunner: rebuild and restart a Go program whenever its sources change."""

__version__ = "0.2.0"
