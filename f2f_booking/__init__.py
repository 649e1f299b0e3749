"""Face-to-face session booking upload: batch validation and commit."""

__version__ = "0.1.0"
