"""Update applier: materialize a candidate subset and validate it."""

from collections.abc import Sequence

from jsupdate.core.log import logger
from jsupdate.manifest.package_json import Manifest, ManifestFile, with_updates
from jsupdate.manifest.update import CandidateUpdate
from jsupdate.runner.check import Validator
from jsupdate.runner.install import Installer


class UpdateTrial:
    """Run context for one bisection.

    Holds the baseline and the collaborators explicitly, so repeated
    or parallel runs in one process (tests, mostly) share nothing.
    Each call builds a complete working copy from the baseline before
    anything touches the disk.
    """

    def __init__(
        self,
        baseline: Manifest,
        manifest_file: ManifestFile,
        installer: Installer,
        validator: Validator,
    ):
        self.baseline = baseline
        self.manifest_file = manifest_file
        self.installer = installer
        self.validator = validator
        self.attempts = 0

    def apply(self, updates: Sequence[CandidateUpdate]) -> Manifest:
        """Write baseline + ``updates`` to disk and install it.

        Raises:
            ManifestWriteFailed: If the manifest cannot be written
            MaterializationFailed: If the install step fails
        """
        manifest = with_updates(self.baseline, updates)
        self.manifest_file.persist(manifest)
        self.installer.install()
        return manifest

    def __call__(self, updates: Sequence[CandidateUpdate]) -> bool:
        self.attempts += 1
        for update in updates:
            logger.debug(f"  {update.summary()}")
        self.apply(updates)
        return self.validator.test(check_name=f"trial-{self.attempts}")
