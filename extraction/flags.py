"""
Compiler flag inference from a CMake compilation database.

Only the flags that change how headers are found or read are kept:
include directories, macro definitions, the language standard and forced
includes. Everything else on a compile line (the compiler itself, ``-c``,
``-o <out>``, warnings, the source file) is dropped.
"""

import json
import logging
import os
import shlex
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Sequence, Tuple

from core.docs_config import ConfigurationError

logger = logging.getLogger(__name__)

COMPILE_COMMANDS_FILE = "compile_commands.json"

# Flags taking a directory, most specific first so "-isystem" wins over "-I"
_DIRECTORY_FLAGS: Tuple[str, ...] = ("-isystem", "-iquote", "-I")
_MACRO_FLAGS: Tuple[str, ...] = ("-D", "-U")


@dataclass(frozen=True)
class IncludeSearchPath:
    """Directories searched for ``#include`` targets, by lookup stage."""

    quote: Tuple[str, ...] = ()
    angled: Tuple[str, ...] = ()
    system: Tuple[str, ...] = ()


def load_compile_commands(build_dir: str) -> List[Dict[str, Any]]:
    """Read ``compile_commands.json`` from ``build_dir``.

    Raises:
        ConfigurationError: If the file is missing or is not a JSON list.
    """
    path = os.path.join(build_dir, COMPILE_COMMANDS_FILE)
    try:
        with open(path, "r", encoding="utf-8") as f:
            payload = json.load(f)
    except OSError as e:
        raise ConfigurationError(f"Unable to read {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Unable to parse {path}: {e}") from e

    if not isinstance(payload, list):
        raise ConfigurationError(f"{path} must contain a JSON list")
    entries = [entry for entry in payload if isinstance(entry, dict)]
    logger.debug("Loaded %d compile command(s) from %s", len(entries), path)
    return entries


def command_arguments(entry: Dict[str, Any]) -> List[str]:
    """Argument vector of a compile command, compiler included."""
    arguments = entry.get("arguments")
    if isinstance(arguments, list):
        return [str(a) for a in arguments]
    command = entry.get("command")
    if isinstance(command, str):
        return shlex.split(command)
    return []


def _expand_response_files(args: Sequence[str], directory: str) -> List[str]:
    """Inline ``@file.rsp`` arguments."""
    expanded: List[str] = []
    for arg in args:
        if arg.startswith("@") and len(arg) > 1:
            rsp_path = os.path.join(directory, arg[1:])
            try:
                with open(rsp_path, "r", encoding="utf-8") as f:
                    expanded.extend(shlex.split(f.read()))
            except OSError as e:
                raise ConfigurationError(f"Unable to read response file {rsp_path}: {e}") from e
        else:
            expanded.append(arg)
    return expanded


def _absolute(path: str, directory: str) -> str:
    path = path.strip('"')
    if os.path.isabs(path):
        return os.path.normpath(path)
    return os.path.normpath(os.path.join(directory, path))


def normalize_flags(args: Sequence[str], directory: str) -> List[str]:
    """Keep header-relevant flags, in joined form with absolute paths.

    ``-I include`` becomes ``-I/abs/include``; ``-D X`` becomes ``-DX``;
    ``-include file`` stays a two-token pair with an absolute path.

    Args:
        args: Raw compiler arguments.
        directory: Directory relative paths are resolved against.
    """
    flags: List[str] = []
    i = 0
    while i < len(args):
        arg = args[i]

        if arg == "-include":
            if i + 1 < len(args):
                flags.extend(["-include", _absolute(args[i + 1], directory)])
            i += 2
            continue

        matched = False
        for prefix in _DIRECTORY_FLAGS:
            if arg.startswith(prefix):
                value = arg[len(prefix):]
                if not value and i + 1 < len(args):
                    i += 1
                    value = args[i]
                if value:
                    flags.append(prefix + _absolute(value, directory))
                matched = True
                break
        if not matched:
            for prefix in _MACRO_FLAGS:
                if arg.startswith(prefix):
                    value = arg[len(prefix):]
                    if not value and i + 1 < len(args):
                        i += 1
                        value = args[i]
                    if value:
                        # -DMACRO="" defines MACRO as empty
                        flags.append(prefix + value.replace('=""', "="))
                    matched = True
                    break
        if not matched and arg.startswith("-std="):
            flags.append(arg)
        i += 1
    return flags


def _entry_source(entry: Dict[str, Any]) -> str:
    directory = str(entry.get("directory", "") or ".")
    return os.path.realpath(os.path.join(directory, str(entry.get("file", ""))))


def infer_flags(root: str, build_dir: str, source: str) -> List[str]:
    """Compiler flags the build uses for ``source``.

    Args:
        root: Project root. Appended as an include directory.
        build_dir: Build directory holding ``compile_commands.json``,
            relative to ``root`` or absolute.
        source: The reference source file, relative to ``root`` or absolute.

    Raises:
        ConfigurationError: If the database cannot be read or has no entry
            for ``source``.
    """
    root = os.path.abspath(root)
    build_path = build_dir if os.path.isabs(build_dir) else os.path.join(root, build_dir)
    source_path = os.path.realpath(source if os.path.isabs(source) else os.path.join(root, source))

    for entry in load_compile_commands(build_path):
        if _entry_source(entry) != source_path:
            continue
        directory = str(entry.get("directory", "") or root)
        args = _expand_response_files(command_arguments(entry)[1:], directory)
        flags = normalize_flags(args, directory)
        flags.append(f"-I{root}")
        logger.info("Inferred %d flag(s) from %s", len(flags), os.path.relpath(source_path, root))
        return flags

    raise ConfigurationError(
        f"No compile command for {source} in {os.path.join(build_path, COMPILE_COMMANDS_FILE)}"
    )


def _iter_flags(flags: Sequence[str]) -> Iterator[Tuple[str, ...]]:
    """Group a flag list into units; ``-include`` keeps its operand."""
    i = 0
    while i < len(flags):
        if flags[i] == "-include" and i + 1 < len(flags):
            yield (flags[i], flags[i + 1])
            i += 2
        else:
            yield (flags[i],)
            i += 1


def _macro_name(flag: str) -> str:
    return flag[2:].split("=", 1)[0]


def merge_flags(inferred: Sequence[str], explicit: Sequence[str]) -> List[str]:
    """Layer explicitly configured flags over inferred ones.

    Inferred flags form the base. An explicit ``-D``/``-U`` for a macro
    replaces every inferred definition of that macro, an explicit ``-std=``
    replaces the inferred one, and repeated flags (include directories in
    particular) keep their first occurrence.

    Example:
        >>> merge_flags(["-DMODE=1", "-I/a"], ["-DMODE=2", "-I/a", "-I/b"])
        ['-I/a', '-DMODE=2', '-I/b']
    """
    overridden_macros = {
        _macro_name(flag) for flag in explicit if flag.startswith(_MACRO_FLAGS)
    }
    overrides_std = any(flag.startswith("-std=") for flag in explicit)

    merged: List[str] = []
    seen = set()
    for source, units in (("inferred", _iter_flags(inferred)), ("explicit", _iter_flags(explicit))):
        for unit in units:
            head = unit[0]
            if source == "inferred":
                if head.startswith(_MACRO_FLAGS) and _macro_name(head) in overridden_macros:
                    logger.debug("Explicit compile args override inferred %s", head)
                    continue
                if head.startswith("-std=") and overrides_std:
                    continue
            if unit in seen:
                continue
            seen.add(unit)
            merged.extend(unit)
    return merged


def include_directories(flags: Sequence[str]) -> IncludeSearchPath:
    """Extract the include search path from a flag list."""
    quote: List[str] = []
    angled: List[str] = []
    system: List[str] = []
    for unit in _iter_flags(flags):
        head = unit[0]
        if head.startswith("-iquote"):
            quote.append(head[len("-iquote"):])
        elif head.startswith("-isystem"):
            system.append(head[len("-isystem"):])
        elif head.startswith("-I"):
            angled.append(head[len("-I"):])
    return IncludeSearchPath(quote=tuple(quote), angled=tuple(angled), system=tuple(system))
