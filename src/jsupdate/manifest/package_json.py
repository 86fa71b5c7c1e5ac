"""package.json reading, patching and writing.

Only the ``dependencies`` and ``devDependencies`` sections are
modelled. Everything else is carried in ``Manifest.raw`` and written
back untouched.
"""

from __future__ import annotations

import codecs
import json
import os
import re
import tempfile
from collections.abc import Iterable
from pathlib import Path

from pydantic import BaseModel, Field

from jsupdate.core.errors import ManifestUnreadable, ManifestWriteFailed
from jsupdate.core.log import logger
from jsupdate.manifest.update import CandidateUpdate

DEPENDENCIES = "dependencies"
DEV_DEPENDENCIES = "devDependencies"

DEFAULT_INDENT = "  "


class Manifest(BaseModel):
    """Raw manifest bytes plus the two dependency mappings."""

    raw: bytes
    dependencies: dict[str, str] = Field(default_factory=dict)
    dev_dependencies: dict[str, str] = Field(default_factory=dict)


def copy_manifest(base: Manifest) -> Manifest:
    """Working copy of ``base``: same raw bytes, unshared mappings."""
    return Manifest(
        raw=base.raw,
        dependencies=dict(base.dependencies),
        dev_dependencies=dict(base.dev_dependencies),
    )


def apply_updates(
    manifest: Manifest, updates: Iterable[CandidateUpdate]
) -> None:
    """Set each update's latest version in ``manifest``, in place.

    A name already in devDependencies is updated there; any other name
    is written to dependencies, including names found in neither
    section.
    """
    for update in updates:
        if update.name in manifest.dev_dependencies:
            manifest.dev_dependencies[update.name] = update.latest
        else:
            manifest.dependencies[update.name] = update.latest


def with_updates(
    base: Manifest, updates: Iterable[CandidateUpdate]
) -> Manifest:
    """Complete working copy of ``base`` with ``updates`` applied."""
    manifest = copy_manifest(base)
    apply_updates(manifest, updates)
    return manifest


def detect_indent(text: str) -> str:
    """Indentation of the first indented line, or two spaces."""
    match = re.search(r'^([ \t]+)\S', text, re.MULTILINE)
    return match.group(1) if match else DEFAULT_INDENT


def _section(document: dict, key: str, path: Path) -> dict[str, str]:
    section = document.get(key)
    if section is None:
        return {}
    if not isinstance(section, dict) or not all(
        isinstance(v, str) for v in section.values()
    ):
        raise ManifestUnreadable(
            f"{path}: '{key}' must map package names to version strings"
        )
    return dict(section)


_DECODER = json.JSONDecoder()
_WHITESPACE = re.compile(r'[ \t\n\r]*')


def _skip(text: str, pos: int) -> int:
    return _WHITESPACE.match(text, pos).end()


def _expect(text: str, pos: int, char: str) -> None:
    if text[pos:pos + 1] != char:
        raise ValueError(f"expected {char!r} at offset {pos}")


def _members(text: str) -> tuple[dict[str, tuple[int, int, int]], int]:
    """Offsets of the top-level members of a JSON object document.

    Returns a mapping from key to (key start, value start, value end)
    and the offset just past the last member's value, or just past the
    opening brace of an empty object.
    """
    members = {}
    pos = _skip(text, 0)
    _expect(text, pos, "{")
    last_end = pos + 1
    pos = _skip(text, pos + 1)
    if text[pos:pos + 1] == "}":
        return members, last_end

    while True:
        key_start = pos
        key, pos = _DECODER.raw_decode(text, pos)
        if not isinstance(key, str):
            raise ValueError(f"expected a key at offset {key_start}")
        pos = _skip(text, pos)
        _expect(text, pos, ":")
        start = _skip(text, pos + 1)
        _, last_end = _DECODER.raw_decode(text, start)
        members[key] = (key_start, start, last_end)

        pos = _skip(text, last_end)
        if text[pos:pos + 1] == "}":
            return members, last_end
        _expect(text, pos, ",")
        pos = _skip(text, pos + 1)


def _line_indent(text: str, pos: int) -> str:
    line_start = text.rfind("\n", 0, pos) + 1
    return re.match(r'[ \t]*', text[line_start:]).group(0)


def _format_section(
    mapping: dict[str, str], text: str, key_start: int, old: str
) -> str:
    """``mapping`` as JSON, laid out like the value it replaces."""
    if "\n" not in old:
        separators = (", ", ": ") if ": " in old else (",", ":")
        return json.dumps(mapping, separators=separators, ensure_ascii=False)

    rendered = json.dumps(
        mapping, indent=detect_indent(text), ensure_ascii=False
    )
    return rendered.replace("\n", "\n" + _line_indent(text, key_start))


def _format_member(
    key: str, mapping: dict[str, str], text: str, comma: bool
) -> str:
    """A new ``"key": mapping`` member, comma first, for appending."""
    if "\n" not in text.strip():
        return "," * comma + json.dumps(
            {key: mapping}, separators=(",", ":"), ensure_ascii=False
        )[1:-1]

    indent = detect_indent(text)
    rendered = json.dumps(mapping, indent=indent, ensure_ascii=False)
    return (
        "," * comma
        + "\n" + indent
        + json.dumps(key) + ": "
        + rendered.replace("\n", "\n" + indent)
    )


class ManifestFile:
    """A package.json on disk."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def load(self) -> Manifest:
        """Read and parse the manifest.

        Raises:
            ManifestUnreadable: If the file is missing, unreadable or
                not a JSON object with well-formed dependency sections
        """
        try:
            raw = self.path.read_bytes()
        except OSError as e:
            raise ManifestUnreadable(
                f"cannot read {self.path}: {e}"
            ) from e

        try:
            document = json.loads(raw)
        except ValueError as e:
            raise ManifestUnreadable(
                f"cannot parse {self.path}: {e}"
            ) from e

        if not isinstance(document, dict):
            raise ManifestUnreadable(
                f"{self.path}: top level must be a JSON object"
            )

        manifest = Manifest(
            raw=raw,
            dependencies=_section(document, DEPENDENCIES, self.path),
            dev_dependencies=_section(document, DEV_DEPENDENCIES, self.path),
        )

        duplicated = sorted(
            set(manifest.dependencies) & set(manifest.dev_dependencies)
        )
        if duplicated:
            logger.warn(
                "Packages listed in both dependencies and devDependencies",
                packages=duplicated,
            )

        logger.debug(
            "Loaded manifest",
            path=str(self.path),
            dependencies=len(manifest.dependencies),
            dev_dependencies=len(manifest.dev_dependencies),
        )
        return manifest

    def render(self, manifest: Manifest) -> bytes:
        """Splice the two dependency sections into the raw bytes.

        Only a section whose mapping changed is rewritten, in the
        layout it had: multi-line sections are re-indented to match the
        file, inline ones stay on one line. A section missing from raw
        is appended after the last top-level member, unless it is
        empty. Every other byte is kept as it was.

        Raises:
            ManifestWriteFailed: If raw cannot be re-parsed or the
                result cannot be serialized
        """
        bom = manifest.raw.startswith(codecs.BOM_UTF8)
        try:
            text = manifest.raw.decode("utf-8-sig")
            members, last_end = _members(text)
            edits = []
            appended = ""
            for key, mapping in (
                (DEPENDENCIES, manifest.dependencies),
                (DEV_DEPENDENCIES, manifest.dev_dependencies),
            ):
                if key in members:
                    key_start, start, end = members[key]
                    if (json.loads(text[start:end]) or {}) == mapping:
                        continue
                    edits.append((start, end, _format_section(
                        mapping, text, key_start, text[start:end]
                    )))
                elif mapping:
                    appended += _format_member(
                        key, mapping, text, bool(members or appended)
                    )
        except (TypeError, ValueError) as e:
            raise ManifestWriteFailed(
                f"cannot re-render {self.path}: {e}"
            ) from e

        if appended:
            edits.append((last_end, last_end, appended))
        for start, end, replacement in sorted(edits, reverse=True):
            text = text[:start] + replacement + text[end:]

        return (codecs.BOM_UTF8 if bom else b"") + text.encode("utf-8")

    def persist(self, manifest: Manifest) -> None:
        """Write ``manifest`` back over the file.

        Raises:
            ManifestWriteFailed: On serialization or I/O errors
        """
        self._write(self.render(manifest))
        logger.debug("Wrote manifest", path=str(self.path))

    def restore(self, manifest: Manifest) -> None:
        """Write the raw bytes of ``manifest`` back verbatim.

        Raises:
            ManifestWriteFailed: On I/O errors
        """
        self._write(manifest.raw)
        logger.info("Restored original manifest", path=str(self.path))

    def _write(self, data: bytes) -> None:
        # Temp file + rename so an interrupted run never leaves a
        # partially written manifest
        tmp_name = None
        try:
            fd, tmp_name = tempfile.mkstemp(
                dir=self.path.parent,
                prefix=f".{self.path.name}.",
                suffix=".tmp",
            )
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            if self.path.exists():
                os.chmod(tmp_name, self.path.stat().st_mode & 0o777)
            os.replace(tmp_name, self.path)
        except OSError as e:
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise ManifestWriteFailed(
                f"cannot write {self.path}: {e}"
            ) from e
