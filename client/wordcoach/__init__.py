"""WordCoach pronunciation capture and evaluation pipeline."""

__version__ = "0.1.0"
