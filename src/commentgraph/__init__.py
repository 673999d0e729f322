"""YouTube comment collection and actor network construction."""

__version__ = "0.1.0"
