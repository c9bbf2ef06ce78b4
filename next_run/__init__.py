"""next-run: a launcher for Next.js development and production workflows."""

__version__ = "1.0.0"
