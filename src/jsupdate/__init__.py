"""jsupdate - test-driven dependency upgrades for npm projects."""

__version__ = "0.1.0"
