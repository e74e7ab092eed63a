"""BookmarkBrain - summarize and categorize saved links."""

__version__ = "0.1.0"
