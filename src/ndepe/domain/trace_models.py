from __future__ import annotations

"""
Trace Domain Data Models.

Defines the records that flow from the tracer through classification and
grouping: the normalized trace graph value, the parsed package identity of a
file, the classified file itself and the per-package/per-version accumulator.
"""

import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set, Tuple

# -----------------------------------------------------------------------------
# TRACE GRAPH
# -----------------------------------------------------------------------------

@dataclass(frozen=True)
class TraceReason:
    """
    Why a file was loaded, as reported by the tracer.

    Attributes:
        parents: Raw paths of the files that required this one.
        ignored: The tracer flagged the file as ignored.
    """
    parents: Tuple[str, ...] = ()
    ignored: bool = False


# -----------------------------------------------------------------------------
# CLASSIFICATION
# -----------------------------------------------------------------------------

@dataclass(frozen=True)
class PackageIdentity:
    """
    Owning package of a file.

    Attributes:
        root: Absolute install directory of the package.
        name: Package name (scoped names keep their '@scope/' prefix).
        sub_path: File location relative to root, using '/' separators.
    """
    root: str
    name: str
    sub_path: str


@dataclass(frozen=True)
class TracedFile:
    """
    A traced file attributed to a package.

    Attributes:
        path: Real absolute path.
        parents: Real absolute paths of the requiring files, in tracer order.
        is_direct_dependency: A parent lives in the project but outside its store.
        package_name: Owning package name.
        package_install_root: Owning package install directory.
        sub_path: Location relative to the install directory.
        package_version: Set once grouping resolved the owning manifest.
    """
    path: str
    parents: Tuple[str, ...]
    is_direct_dependency: bool
    package_name: str
    package_install_root: str
    sub_path: str
    package_version: Optional[str] = None


# -----------------------------------------------------------------------------
# GROUPING
# -----------------------------------------------------------------------------

@dataclass
class PackageVersionEntry:
    """
    One version of one package, with the traced files that belong to it.

    The same version may be installed in several places (nested npm
    duplicates); files from every copy accumulate here, each remembering its
    location relative to the copy it came from.

    Attributes:
        manifest: Parsed package.json (or a stand-in).
        install_root: Install directory of the first copy discovered.
        files: Absolute paths to materialize, in discovery order.
        is_direct_dependency: Any contributing file was a direct dependency.
        sub_paths: File path -> '/'-separated location inside its own copy.
    """
    manifest: Dict[str, Any]
    install_root: str
    files: List[str] = field(default_factory=list)
    is_direct_dependency: bool = False
    sub_paths: Dict[str, str] = field(default_factory=dict, repr=False)
    _seen: Set[str] = field(default_factory=set, repr=False, compare=False)

    def add_file(self, path: str, sub_path: Optional[str] = None) -> bool:
        """
        Append a file unless it is already listed. Returns True when added.

        Without sub_path the location is taken relative to install_root.
        """
        if not self._seen:
            self._seen.update(self.files)
        if path in self._seen:
            return False
        self._seen.add(path)
        self.files.append(path)
        if sub_path is not None:
            self.sub_paths[path] = sub_path
        return True

    def sub_path_of(self, path: str) -> str:
        """Location of a listed file inside the package directory."""
        sub_path = self.sub_paths.get(path)
        if sub_path is None:
            sub_path = os.path.relpath(path, self.install_root).replace(os.sep, "/")
        return sub_path


@dataclass
class TracedPackage:
    """A package name and its reachable versions, in discovery order."""
    name: str
    versions: Dict[str, PackageVersionEntry] = field(default_factory=dict)

    @property
    def is_conflicted(self) -> bool:
        return len(self.versions) > 1


@dataclass(frozen=True)
class PackageRef:
    """A (name, version) pair identifying one installed package version."""
    name: str
    version: str

    def __str__(self) -> str:
        return f"{self.name}@{self.version}"
