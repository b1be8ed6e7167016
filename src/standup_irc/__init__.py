"""IRC relay bot for the standup status tracker."""

__version__ = "0.1.0"
