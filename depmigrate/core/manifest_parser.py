"""Manifest parser for pub-style ``pubspec.yaml`` files.

Turns the YAML document into a :class:`~depmigrate.models.Manifest`.
Dependency entries may take any of the usual forms::

    dependencies:
      http: ^0.12.0                 # hosted, caret constraint
      meta:                         # hosted, any version
      collection: '>=1.14.0 <2.0.0'
      mirror:
        hosted: https://pub.example.com
        version: ^2.0.0
      local_utils:
        path: ../local_utils
      forked:
        git:
          url: https://github.com/org/forked.git
          ref: main
      flutter:
        sdk: flutter

Typical usage::

    parser = ManifestParser()
    manifest = parser.parse_file("pubspec.yaml")
    for dep in manifest.direct_dependencies:
        print(dep.name, dep.source.value, dep.constraint)
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

import yaml

from depmigrate.exceptions import ManifestError
from depmigrate.utils import get_logger, safe_read_file
from depmigrate.models import (
    ANY,
    InvalidConstraint,
    Manifest,
    PackageRange,
    SourceKind,
    VersionRange,
    parse_constraint,
)
from depmigrate.constants import (
    DEPENDENCIES_KEY,
    DEPENDENCY_OVERRIDES_KEY,
    DEV_DEPENDENCIES_KEY,
    SOURCE_KEYS,
)

logger = get_logger("manifest_parser")


class ManifestParser:
    """Stateless parser for manifest documents.

    Every error is reported as a :class:`ManifestError` naming the file
    (when known) and the dotted key that was rejected.
    """

    def parse_file(self, file_path: Union[str, Path]) -> Manifest:
        """Read and parse the manifest at *file_path*."""
        path = Path(file_path)
        text = safe_read_file(path)
        return self.parse_string(text, file_path=str(path))

    def parse_string(self, text: str, *, file_path: Optional[str] = None) -> Manifest:
        """Parse manifest *text*.

        Args:
            text: YAML document.
            file_path: Used in error messages only.

        Raises:
            ManifestError: Invalid YAML or an invalid manifest layout.
        """
        try:
            document = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise ManifestError(f"Invalid YAML: {exc}", file_path=file_path) from exc

        if not isinstance(document, dict):
            raise ManifestError(
                "Manifest must be a YAML mapping",
                file_path=file_path,
            )

        name = document.get("name")
        if not isinstance(name, str) or not name:
            raise ManifestError(
                "Manifest must declare a package name",
                file_path=file_path,
                key="name",
            )

        version = document.get("version")
        dependencies = self._parse_section(document, DEPENDENCIES_KEY, file_path)
        dev_dependencies = self._parse_section(document, DEV_DEPENDENCIES_KEY, file_path)

        duplicated = [dep for dep in dev_dependencies if dep in dependencies]
        if duplicated:
            raise ManifestError(
                "Packages declared in both dependencies and dev_dependencies: "
                + ", ".join(duplicated),
                file_path=file_path,
                key=DEV_DEPENDENCIES_KEY,
            )

        manifest = Manifest(
            name=name,
            version=None if version is None else str(version),
            sdk_constraints=self._parse_environment(document, file_path),
            dependencies=dependencies,
            dev_dependencies=dev_dependencies,
            dependency_overrides=self._parse_section(
                document, DEPENDENCY_OVERRIDES_KEY, file_path
            ),
        )
        logger.debug(
            "Parsed manifest %s: %d dependencies, %d dev_dependencies, %d overrides",
            manifest.name,
            len(manifest.dependencies),
            len(manifest.dev_dependencies),
            len(manifest.dependency_overrides),
        )
        return manifest

    # ------------------------------------------------------------------
    # Sections
    # ------------------------------------------------------------------

    def _parse_environment(
        self,
        document: Mapping[str, Any],
        file_path: Optional[str],
    ) -> Dict[str, VersionRange]:
        environment = document.get("environment") or {}
        if not isinstance(environment, dict):
            raise ManifestError(
                "environment must be a mapping",
                file_path=file_path,
                key="environment",
            )

        constraints: Dict[str, VersionRange] = {}
        for sdk, text in environment.items():
            constraints[str(sdk)] = self._parse_constraint(
                text, file_path=file_path, key=f"environment.{sdk}"
            )
        return constraints

    def _parse_section(
        self,
        document: Mapping[str, Any],
        section: str,
        file_path: Optional[str],
    ) -> Dict[str, PackageRange]:
        entries = document.get(section) or {}
        if not isinstance(entries, dict):
            raise ManifestError(
                f"{section} must be a mapping",
                file_path=file_path,
                key=section,
            )

        return {
            str(name): self.parse_dependency(
                str(name), value, file_path=file_path, key=f"{section}.{name}"
            )
            for name, value in entries.items()
        }

    # ------------------------------------------------------------------
    # Entries
    # ------------------------------------------------------------------

    def parse_dependency(
        self,
        name: str,
        value: Any,
        *,
        file_path: Optional[str] = None,
        key: Optional[str] = None,
    ) -> PackageRange:
        """Parse the value of one dependency entry.

        Args:
            name: Dependency name (the entry's key).
            value: The YAML value: ``None``, a constraint string, or a
                mapping with one source key and an optional ``version``.
            file_path: Used in error messages only.
            key: Dotted key used in error messages.
        """
        key = key or name

        if value is None:
            return PackageRange(name, SourceKind.HOSTED, ANY)

        # Unquoted YAML numbers such as `1.0` are still version constraints
        if isinstance(value, (str, int, float)) and not isinstance(value, bool):
            constraint = self._parse_constraint(value, file_path=file_path, key=key)
            return PackageRange(name, SourceKind.HOSTED, constraint)

        if not isinstance(value, dict):
            raise ManifestError(
                f"Invalid dependency specification for '{name}'",
                file_path=file_path,
                key=key,
            )

        sources: List[str] = [source for source in SOURCE_KEYS if source in value]
        if len(sources) > 1:
            raise ManifestError(
                f"Dependency '{name}' may only have one source, found: "
                + ", ".join(sources),
                file_path=file_path,
                key=key,
            )

        constraint = self._parse_constraint(
            value.get("version"), file_path=file_path, key=f"{key}.version"
        )
        source = SourceKind(sources[0]) if sources else SourceKind.HOSTED
        description = self._parse_description(
            name, source, value.get(source.value), file_path=file_path, key=key
        )
        return PackageRange(name, source, constraint, description)

    def _parse_description(
        self,
        name: str,
        source: SourceKind,
        raw: Any,
        *,
        file_path: Optional[str],
        key: str,
    ) -> Dict[str, Any]:
        if raw is None:
            if source is SourceKind.HOSTED:
                return {}
        elif isinstance(raw, str):
            field_name = {
                SourceKind.HOSTED: "url",
                SourceKind.PATH: "path",
                SourceKind.GIT: "url",
                SourceKind.SDK: "sdk",
            }[source]
            return {field_name: raw}
        elif isinstance(raw, dict) and source in (SourceKind.HOSTED, SourceKind.GIT):
            if source is SourceKind.GIT and not isinstance(raw.get("url"), str):
                raise ManifestError(
                    f"Git dependency '{name}' must have a url",
                    file_path=file_path,
                    key=f"{key}.git.url",
                )
            return {str(k): v for k, v in raw.items()}

        raise ManifestError(
            f"Invalid {source.value} description for '{name}'",
            file_path=file_path,
            key=f"{key}.{source.value}",
        )

    @staticmethod
    def _parse_constraint(
        text: Any,
        *,
        file_path: Optional[str],
        key: str,
    ) -> VersionRange:
        try:
            return parse_constraint(None if text is None else str(text))
        except InvalidConstraint as exc:
            raise ManifestError(str(exc), file_path=file_path, key=key) from exc
