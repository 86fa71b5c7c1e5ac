"""Candidate update model."""

from pydantic import BaseModel, ConfigDict


class CandidateUpdate(BaseModel):
    """One proposed version bump for a single dependency.

    ``latest`` is the version that gets written to the manifest;
    ``wanted`` (the newest version allowed by the current range) is
    kept for reporting only.
    """

    name: str
    current: str
    wanted: str
    latest: str

    model_config = ConfigDict(frozen=True)

    def summary(self) -> str:
        return f"{self.name} {self.current} -> {self.latest}"


def names(updates) -> list[str]:
    """Package names of ``updates``, in order."""
    return [update.name for update in updates]
