"""Photo-based RTS meter checks with confidence policy and daily quotas."""

__version__ = "0.1.0"
