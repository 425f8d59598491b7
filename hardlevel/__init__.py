"""Progress analytics and gamification engine for 90-day habit challenges."""

__version__ = "0.1.0"
