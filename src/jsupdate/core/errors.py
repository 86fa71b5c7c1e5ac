"""Error kinds that abort an update run.

A validator that runs and exits non-zero is not an error: it is the
negative verdict the bisection acts on, and is reported as ``False``.
"""


class JsupdateError(RuntimeError):
    """Base class for unrecoverable run errors."""


class ManifestUnreadable(JsupdateError):
    """package.json is missing, unreadable, or not a valid manifest."""


class ManifestWriteFailed(JsupdateError):
    """package.json could not be serialized or written."""


class ValidatorUnrunnable(JsupdateError):
    """The test command could not be started at all."""


class MaterializationFailed(JsupdateError):
    """The install step failed for a manifest state."""


class DiscoveryFailed(JsupdateError):
    """The outdated-packages report could not be produced or parsed."""


class CommitFailed(JsupdateError):
    """Staging or committing the updated manifest failed."""


__all__ = [
    "JsupdateError",
    "ManifestUnreadable",
    "ManifestWriteFailed",
    "ValidatorUnrunnable",
    "MaterializationFailed",
    "DiscoveryFailed",
    "CommitFailed",
]
