"""
Include-set resolution.

Expands the configured include/exclude globs against the project tree and
follows ``#include`` edges to find the closed set of headers to parse.
Excluded headers that a navigable header includes are kept as parse-only:
they are parsed so their types can be linked, but never listed.
"""

import logging
import os
import re
from collections import deque
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Pattern, Sequence, Set, Tuple

from core.docs_config import ConfigurationError
from extraction.config import CPP_EXTENSIONS, HEADER_EXTENSIONS, SKIPPED_DIRECTORIES
from extraction.flags import IncludeSearchPath, include_directories
from extraction.parser import IncludeDirective, scan_includes

logger = logging.getLogger(__name__)

Scanner = Callable[[str], List[IncludeDirective]]

_WILDCARD_CHARS = set("*?[")


def is_wildcard(pattern: str) -> bool:
    return any(ch in _WILDCARD_CHARS for ch in pattern)


def _clean_pattern(pattern: str) -> str:
    cleaned = pattern.strip().replace("\\", "/")
    while cleaned.startswith("./"):
        cleaned = cleaned[2:]
    return cleaned.lstrip("/").rstrip("/")


def compile_glob(pattern: str) -> Pattern[str]:
    """Compile a project glob into a regex over ``/``-separated relative paths.

    ``**`` matches across directories, ``*`` and ``?`` stay within one path
    segment, ``[...]`` is a character class. Matching is case-sensitive.

    Example:
        >>> bool(compile_glob("api/**/*.hpp").match("api/v1/widget.hpp"))
        True
        >>> bool(compile_glob("api/*.hpp").match("api/v1/widget.hpp"))
        False
    """
    glob = _clean_pattern(pattern)
    parts: List[str] = []
    i = 0
    while i < len(glob):
        ch = glob[i]
        if glob.startswith("**", i):
            i += 2
            if glob.startswith("/", i):
                # "**/" also matches zero directories
                parts.append("(?:.*/)?")
                i += 1
            else:
                parts.append(".*")
            continue
        if ch == "*":
            parts.append("[^/]*")
        elif ch == "?":
            parts.append("[^/]")
        elif ch == "[":
            end = glob.find("]", i + 1)
            if end == -1:
                parts.append(re.escape(ch))
            else:
                body = glob[i + 1:end]
                if body.startswith("!"):
                    body = "^" + body[1:]
                parts.append(f"[{body}]")
                i = end
        else:
            parts.append(re.escape(ch))
        i += 1
    return re.compile("^" + "".join(parts) + "$")


@dataclass(frozen=True)
class IncludeSet:
    """Closed set of headers to document.

    Attributes:
        root: Canonical project root.
        navigable: Headers matched by the include globs and not excluded.
        parse_only: Headers outside the navigable set reached via ``#include``.
        includes: Per header, every project header it transitively includes.
        unresolved: Per header, ``#include`` targets that were not found in
            the project.
    """

    root: str
    navigable: Tuple[str, ...]
    parse_only: Tuple[str, ...] = ()
    includes: Mapping[str, Tuple[str, ...]] = field(default_factory=dict)
    unresolved: Mapping[str, Tuple[str, ...]] = field(default_factory=dict)

    def files(self) -> Tuple[str, ...]:
        """Navigable headers first, then parse-only ones, each path-sorted."""
        return self.navigable + self.parse_only

    def is_navigable(self, path: str) -> bool:
        return path in self.navigable

    def absolute(self, path: str) -> str:
        return os.path.join(self.root, *path.split("/"))


def _relative(root: str, abs_path: str) -> Optional[str]:
    """Path of ``abs_path`` relative to ``root``, None when outside it."""
    rel = os.path.relpath(abs_path, root)
    if rel == os.pardir or rel.startswith(os.pardir + os.sep) or os.path.isabs(rel):
        return None
    return rel.replace(os.sep, "/")


def walk_project(root: str) -> Tuple[List[str], List[str]]:
    """List project files and directories as sorted relative paths.

    Hidden and build directories are skipped. Symlinked directories are
    followed once.
    """
    files: List[str] = []
    directories: List[str] = []
    visited: Set[str] = set()
    for current, dirs, names in os.walk(root, followlinks=True):
        real = os.path.realpath(current)
        if real in visited:
            dirs[:] = []
            continue
        visited.add(real)
        dirs[:] = sorted(d for d in dirs if not d.startswith(".") and d not in SKIPPED_DIRECTORIES)
        rel_dir = os.path.relpath(current, root).replace(os.sep, "/")
        prefix = "" if rel_dir == "." else rel_dir + "/"
        directories.extend(prefix + d for d in dirs)
        files.extend(prefix + n for n in sorted(names))
    return sorted(files), sorted(directories)


def _headers_below(directory: str, files: Iterable[str]) -> List[str]:
    prefix = directory.rstrip("/") + "/" if directory else ""
    return [
        f for f in files
        if f.startswith(prefix) and os.path.splitext(f)[1] in HEADER_EXTENSIONS
    ]


def expand_patterns(root: str, patterns: Sequence[str], files: List[str], directories: List[str]) -> List[str]:
    """Expand include globs into relative file paths.

    Raises:
        ConfigurationError: If a literal pattern names a missing or
            unreadable path.
    """
    matched: List[str] = []
    for raw in patterns:
        pattern = _clean_pattern(raw)
        if not is_wildcard(pattern):
            abs_path = os.path.join(root, *pattern.split("/")) if pattern else root
            if os.path.isdir(abs_path):
                found = _headers_below(pattern, files)
                if not found:
                    logger.warning("Include directory %s contains no headers", raw)
                matched.extend(found)
            elif os.path.isfile(abs_path) and os.access(abs_path, os.R_OK):
                matched.append(pattern)
            else:
                raise ConfigurationError(f"Included file not found or unreadable: {raw}")
            continue

        regex = compile_glob(pattern)
        found = [f for f in files if regex.match(f) and os.path.splitext(f)[1] in CPP_EXTENSIONS]
        for directory in directories:
            if regex.match(directory):
                found.extend(_headers_below(directory, files))
        if not found:
            logger.warning("Include pattern %s matched no files", raw)
        matched.extend(found)
    return matched


def _is_excluded(path: str, excludes: Sequence[Pattern[str]]) -> bool:
    """A file is excluded when it or one of its parent directories matches."""
    segments = path.split("/")
    candidates = ["/".join(segments[:i]) for i in range(1, len(segments) + 1)]
    return any(regex.match(c) for regex in excludes for c in candidates)


def resolve_include(
    directive: IncludeDirective,
    including_file: str,
    search: IncludeSearchPath,
    root: str,
) -> Optional[str]:
    """Find the file an ``#include`` refers to.

    Quoted includes look next to the including file and in ``-iquote``
    directories first; then ``-I``, ``-isystem`` and the project root are
    searched for both forms.

    Returns:
        Canonical absolute path, or None when the target is not found.
    """
    directories: List[str] = []
    if not directive.is_system:
        directories.append(os.path.dirname(including_file))
        directories.extend(search.quote)
    directories.extend(search.angled)
    directories.extend(search.system)
    directories.append(root)

    for directory in directories:
        candidate = os.path.normpath(os.path.join(directory, directive.target))
        if os.path.isfile(candidate):
            return os.path.realpath(candidate)
    return None


def _transitive(direct: Mapping[str, Set[str]], start: str) -> Tuple[str, ...]:
    seen: Set[str] = set()
    queue = deque(direct.get(start, ()))
    while queue:
        current = queue.popleft()
        if current in seen or current == start:
            continue
        seen.add(current)
        queue.extend(direct.get(current, ()))
    return tuple(sorted(seen))


def resolve_include_set(
    root: str,
    include: Sequence[str],
    exclude: Sequence[str] = (),
    flags: Sequence[str] = (),
    scanner: Scanner = scan_includes,
) -> IncludeSet:
    """Resolve the closed set of headers to document.

    Args:
        root: Project root directory.
        include: Include globs, rooted at ``root``.
        exclude: Exclude globs, rooted at ``root``.
        flags: Compiler flags; their include directories drive lookup.
        scanner: Returns the ``#include`` directives of a file.

    Raises:
        ConfigurationError: If ``include`` is empty or a literal pattern
            names a missing file.
    """
    if not include:
        raise ConfigurationError("docs.include must list at least one pattern")

    root = os.path.realpath(root)
    if not os.path.isdir(root):
        raise ConfigurationError(f"Project root is not a directory: {root}")

    files, directories = walk_project(root)
    candidates = expand_patterns(root, include, files, directories)

    # Deduplicate by canonical path; the first (sorted) spelling wins
    by_real: Dict[str, str] = {}
    for rel in sorted(set(candidates)):
        real = os.path.realpath(os.path.join(root, *rel.split("/")))
        canonical = _relative(root, real) or rel
        if real in by_real:
            logger.debug("Skipping duplicate path %s (same file as %s)", rel, by_real[real])
            continue
        by_real[real] = canonical

    exclude_regexes = [compile_glob(p) for p in exclude]
    navigable = sorted(
        rel for rel in by_real.values() if not _is_excluded(rel, exclude_regexes)
    )
    excluded_count = len(by_real) - len(navigable)
    if excluded_count:
        logger.info("Excluded %d header(s) from navigation", excluded_count)

    search = include_directories(flags)
    direct: Dict[str, Set[str]] = {}
    unresolved: Dict[str, List[str]] = {}
    reached: Set[str] = set(navigable)
    queue = deque(navigable)

    while queue:
        rel = queue.popleft()
        abs_path = os.path.join(root, *rel.split("/"))
        try:
            directives = scanner(abs_path)
        except OSError as e:
            logger.warning("Cannot scan includes of %s: %s", rel, e)
            directives = []

        edges: Set[str] = set()
        for directive in directives:
            target = resolve_include(directive, abs_path, search, root)
            target_rel = _relative(root, target) if target is not None else None
            if target_rel is None:
                logger.debug("Unresolved include <%s> in %s:%d", directive.target, rel, directive.line)
                unresolved.setdefault(rel, []).append(directive.target)
                continue
            target_rel = by_real.get(target, target_rel)
            edges.add(target_rel)
            if target_rel not in reached:
                reached.add(target_rel)
                queue.append(target_rel)
        direct[rel] = edges

    navigable_set = set(navigable)
    parse_only = sorted(reached - navigable_set)
    includes = {rel: _transitive(direct, rel) for rel in sorted(reached)}

    logger.info(
        "Include set: %d navigable, %d parse-only, %d unresolved include(s)",
        len(navigable),
        len(parse_only),
        sum(len(v) for v in unresolved.values()),
    )
    return IncludeSet(
        root=root,
        navigable=tuple(navigable),
        parse_only=tuple(parse_only),
        includes=includes,
        unresolved={k: tuple(v) for k, v in sorted(unresolved.items())},
    )
