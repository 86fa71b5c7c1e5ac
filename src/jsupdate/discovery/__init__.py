"""Discovery of candidate updates."""

from jsupdate.discovery.outdated import discover_updates, parse_outdated

__all__ = ["discover_updates", "parse_outdated"]
