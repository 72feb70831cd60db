"""Browse, search and tag Claude CLI session transcripts."""

__version__ = "0.1.0"
