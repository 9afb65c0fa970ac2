"""Manifest patching.

Rewrites dependency constraints in a manifest file while leaving every
other byte alone: comments, key order, quoting, blank lines and the file's
line endings survive. Edits are line based, like the requirements updater
this grew from; the supported entry layouts are::

    dependencies:
      http: ^0.12.0            # inline scalar: value replaced in place
      meta:                    # empty value: the constraint is filled in
      mirror:                  # block mapping: its ``version:`` key is
        hosted: https://...    # updated, or inserted when missing
        version: ^1.0.0

Flow mappings (``http: {version: ^1.0.0}``) are rejected with a
:class:`~depmigrate.exceptions.ManifestError` rather than reformatted.

All edits are made in memory and checked by re-parsing the result before
the file is replaced in a single atomic write, so the manifest is either
fully updated or untouched.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import List, Optional, Tuple, Union

import yaml

from depmigrate.exceptions import ManifestError
from depmigrate.constants import DEPENDENCIES_KEY
from depmigrate.core.manifest_parser import ManifestParser
from depmigrate.models import ChangeSet, Manifest, VersionRange
from depmigrate.utils import (
    detect_line_ending,
    get_logger,
    safe_read_file,
    safe_write_file,
)

logger = get_logger("patcher")

__all__ = ["ManifestPatcher"]

_KEY_RE = r"^(?P<indent>[ ]*)(?P<quote>['\"]?){key}(?P=quote)[ ]*:(?P<rest>.*)$"


class ManifestPatcher:
    """Applies a :data:`~depmigrate.models.ChangeSet` to a manifest file.

    Args:
        parser: Parser used to check the patched text.
    """

    def __init__(self, parser: Optional[ManifestParser] = None) -> None:
        self.parser = parser or ManifestParser()

    def apply(
        self,
        file_path: Union[str, Path],
        manifest: Manifest,
        changes: ChangeSet,
        *,
        backup: bool = False,
    ) -> bool:
        """Write *changes* into the manifest at *file_path*.

        Args:
            file_path: Manifest file to update.
            manifest: The parsed content of that file.
            changes: Constraint replacements to apply.
            backup: Keep a timestamped copy of the file before writing.

        Returns:
            ``True`` if the file was rewritten, ``False`` for an empty
            change set.

        Raises:
            ManifestError: An entry cannot be located or updated.
            FileOperationError: The file cannot be read or written.
        """
        if not changes:
            return False

        path = Path(file_path)
        text = safe_read_file(path)
        patched = self.patch_text(text, manifest, changes, file_path=str(path))

        backup_path = safe_write_file(path, patched, create_backup=backup)
        if backup_path is not None:
            logger.info("Created backup: %s", backup_path)
        logger.info("Updated %d constraint(s) in %s", len(changes), path)
        return True

    def patch_text(
        self,
        text: str,
        manifest: Manifest,
        changes: ChangeSet,
        *,
        file_path: Optional[str] = None,
    ) -> str:
        """Return *text* with every change in *changes* applied."""
        eol = detect_line_ending(text)
        lines = text.splitlines(keepends=True)

        for original, updated in changes.items():
            section = manifest.section_of(original.name)
            if section is None:
                raise ManifestError(
                    f"'{original.name}' is not a direct dependency",
                    file_path=file_path,
                )
            _update_entry(
                lines,
                section,
                original.name,
                updated.constraint,
                eol,
                file_path=file_path,
            )
            logger.debug(
                "Patched %s.%s: %s -> %s",
                section,
                original.name,
                original.constraint,
                updated.constraint,
            )

        patched = "".join(lines)
        self._verify(patched, manifest, changes, file_path=file_path)
        return patched

    def _verify(
        self,
        patched: str,
        manifest: Manifest,
        changes: ChangeSet,
        *,
        file_path: Optional[str],
    ) -> None:
        reparsed = self.parser.parse_string(patched, file_path=file_path)
        expected = {original.name: updated.constraint for original, updated in changes.items()}

        for dependency in manifest.direct_dependencies:
            section = manifest.section_of(dependency.name)
            entries = (
                reparsed.dependencies
                if section == DEPENDENCIES_KEY
                else reparsed.dev_dependencies
            )
            found = entries.get(dependency.name)
            wanted = expected.get(dependency.name, dependency.constraint)
            if found is None or not found.constraint.is_equivalent(wanted):
                raise ManifestError(
                    f"Failed to update the constraint of '{dependency.name}'",
                    file_path=file_path,
                    key=f"{section}.{dependency.name}",
                )


# ---------------------------------------------------------------------------
# Line editing helpers
# ---------------------------------------------------------------------------


def _update_entry(
    lines: List[str],
    section: str,
    name: str,
    constraint: VersionRange,
    eol: str,
    *,
    file_path: Optional[str],
) -> None:
    """Update ``section.name`` in *lines* in place."""
    key = f"{section}.{name}"
    start, end = _section_bounds(lines, section, file_path=file_path)

    pattern = re.compile(_KEY_RE.format(key=re.escape(name)))
    entry_indent: Optional[int] = None
    for index in range(start, end):
        body, _ = _split_eol(lines[index])
        if _is_blank(body):
            continue

        indent = _indent_of(body)
        if entry_indent is None:
            entry_indent = indent
        if indent != entry_indent:
            continue

        match = pattern.match(body)
        if match is None:
            continue

        _, value, _ = _split_value(match.group("rest"))
        if value.startswith("{"):
            raise ManifestError(
                f"Cannot update flow-style entry '{name}'; "
                "rewrite it as a block mapping",
                file_path=file_path,
                key=key,
            )

        if value:
            _replace_value(lines, index, constraint)
        else:
            _update_block_entry(lines, index, end, indent, constraint, eol)
        return

    raise ManifestError(
        f"Could not locate '{name}' in {section}",
        file_path=file_path,
        key=key,
    )


def _section_bounds(
    lines: List[str],
    section: str,
    *,
    file_path: Optional[str],
) -> Tuple[int, int]:
    """Return the ``[start, end)`` line range of a top-level section body."""
    pattern = re.compile(_KEY_RE.format(key=re.escape(section)))

    for index, line in enumerate(lines):
        body, _ = _split_eol(line)
        match = pattern.match(body)
        if match is None or match.group("indent"):
            continue

        _, value, _ = _split_value(match.group("rest"))
        if value:
            raise ManifestError(
                f"Cannot update inline '{section}' section",
                file_path=file_path,
                key=section,
            )

        end = index + 1
        while end < len(lines):
            following, _ = _split_eol(lines[end])
            if not _is_blank(following) and _indent_of(following) == 0:
                break
            end += 1
        return index + 1, end

    raise ManifestError(
        f"Section '{section}' not found",
        file_path=file_path,
        key=section,
    )


def _update_block_entry(
    lines: List[str],
    index: int,
    end: int,
    entry_indent: int,
    constraint: VersionRange,
    eol: str,
) -> None:
    """Handle an entry whose value is empty or a nested block mapping."""
    child_indent: Optional[int] = None
    version_re = re.compile(_KEY_RE.format(key="version"))

    cursor = index + 1
    while cursor < end:
        body, _ = _split_eol(lines[cursor])
        if _is_blank(body):
            cursor += 1
            continue

        indent = _indent_of(body)
        if indent <= entry_indent:
            break
        if child_indent is None:
            child_indent = indent
        if indent == child_indent:
            match = version_re.match(body)
            if match is not None:
                _replace_value(lines, cursor, constraint)
                return
        cursor += 1

    if child_indent is None:
        # `name:` alone means any version; fill the value in
        body, ending = _split_eol(lines[index])
        head, comment = _split_comment(body)
        rendered = f"{head.rstrip()} {_render_scalar(str(constraint))}"
        lines[index] = f"{rendered}{' ' + comment if comment else ''}{ending}"
        return

    # Child lines exist, so the entry line always ends with a line break
    rendered = _render_scalar(str(constraint))
    lines.insert(index + 1, f"{' ' * child_indent}version: {rendered}{eol}")


def _replace_value(lines: List[str], index: int, constraint: VersionRange) -> None:
    """Replace the scalar after ``key:`` on line *index*, keeping quotes and comments."""
    body, ending = _split_eol(lines[index])
    colon = _key_colon(body)
    head, rest = body[: colon + 1], body[colon + 1 :]

    lead, value, tail = _split_value(rest)
    text = str(constraint)
    if value[:1] in ("'", '"'):
        quote = value[0]
        rendered = f"{quote}{text}{quote}"
    else:
        rendered = _render_scalar(text)

    lines[index] = f"{head}{lead}{rendered}{tail}{ending}"


def _render_scalar(text: str) -> str:
    """Return *text* as a YAML scalar, quoted only when it has to be."""
    try:
        if yaml.safe_load(f"v: {text}") == {"v": text}:
            return text
    except yaml.YAMLError:
        pass
    return f"'{text}'"


def _key_colon(body: str) -> int:
    """Index of the colon that ends the mapping key on *body*."""
    stripped = body.lstrip(" ")
    offset = len(body) - len(stripped)
    if stripped[:1] in ("'", '"'):
        closing = stripped.index(stripped[0], 1)
        return body.index(":", offset + closing + 1)
    return body.index(":")


def _split_value(rest: str) -> Tuple[str, str, str]:
    """Split the text after a key's colon into (leading space, value, tail).

    The tail holds trailing whitespace and any comment.
    """
    lead = rest[: len(rest) - len(rest.lstrip(" "))]
    remainder = rest[len(lead) :]

    if remainder[:1] in ("'", '"'):
        closing = remainder.find(remainder[0], 1)
        if closing != -1:
            return lead, remainder[: closing + 1], remainder[closing + 1 :]

    if remainder.startswith("#"):
        return lead, "", remainder

    value, comment = _split_comment(remainder)
    stripped = value.rstrip(" ")
    tail = value[len(stripped) :] + (comment if comment else "")
    return lead, stripped, tail


def _split_comment(text: str) -> Tuple[str, str]:
    """Split *text* at the first `` #`` comment marker."""
    match = re.search(r"(^|[ ])#", text)
    if match is None:
        return text, ""
    start = match.start() + len(match.group(1))
    return text[:start], text[start:]


def _split_eol(line: str) -> Tuple[str, str]:
    body = line.rstrip("\r\n")
    return body, line[len(body) :]


def _indent_of(body: str) -> int:
    return len(body) - len(body.lstrip(" "))


def _is_blank(body: str) -> bool:
    stripped = body.strip()
    return not stripped or stripped.startswith("#")
