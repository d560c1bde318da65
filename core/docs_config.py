"""Documentation build configuration.

Loads ``docs.yml`` / ``docs.yaml`` / ``docs.json`` from the project root and
validates it into frozen dataclasses. Keys use kebab-case, e.g.::

    project:
      name: Widgets
      version: 1.2.0
    docs:
      include: ["api/**/*.hpp"]
      exclude: ["api/detail/**"]
      tree: https://github.com/acme/widgets/blob/main
    analysis:
      compile-args: ["-DWIDGETS_DOCS"]
    cmake:
      build-dir: build
      infer-args-from: src/widget.cpp
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml
from dotenv import load_dotenv

# Environment overrides (CXXDOCS_WORKERS) may come from a .env file
load_dotenv()

logger = logging.getLogger(__name__)

CONFIG_FILE_NAMES: tuple[str, ...] = ("docs.yml", "docs.yaml", "docs.json")
WORKERS_ENV = "CXXDOCS_WORKERS"
TREE_PATH_PLACEHOLDER = "{path}"


class ConfigurationError(RuntimeError):
    """Raised when the build cannot start because its inputs are invalid."""


@dataclass(frozen=True)
class ProjectSpec:
    """Project metadata shown in page titles."""

    name: str
    version: str = ""
    repository: Optional[str] = None


@dataclass(frozen=True)
class DocsSpec:
    """Which headers are documented and where their sources live online."""

    include: tuple[str, ...]
    exclude: tuple[str, ...] = ()
    tree: Optional[str] = None


@dataclass(frozen=True)
class AnalysisSpec:
    """Parser controls."""

    compile_args: tuple[str, ...] = ()
    tolerate_syntax_errors: bool = False
    workers: Optional[int] = None


@dataclass(frozen=True)
class CmakeSpec:
    """Compile database used to infer compiler flags."""

    infer_args_from: str
    build_dir: str = "build"


@dataclass(frozen=True)
class DocsConfig:
    """Top-level configuration payload."""

    input_dir: str
    project: ProjectSpec
    docs: DocsSpec
    analysis: AnalysisSpec = field(default_factory=AnalysisSpec)
    cmake: Optional[CmakeSpec] = None


def _expect_dict(payload: Any, ctx: str) -> dict[str, Any]:
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ConfigurationError(f"{ctx} must be an object")
    return payload


def _expect_str_list(payload: Any, ctx: str) -> tuple[str, ...]:
    if payload is None:
        return ()
    if isinstance(payload, str):
        payload = [payload]
    if not isinstance(payload, list):
        raise ConfigurationError(f"{ctx} must be a list of strings")
    values: list[str] = []
    for item in payload:
        text = str(item).strip()
        if not text:
            raise ConfigurationError(f"{ctx} contains an empty entry")
        values.append(text)
    return tuple(values)


def find_config_file(input_dir: str) -> str:
    """Return the first config file found in ``input_dir``."""
    for name in CONFIG_FILE_NAMES:
        candidate = os.path.join(input_dir, name)
        if os.path.isfile(candidate):
            return candidate
    raise ConfigurationError(
        f"No configuration file found in {input_dir} "
        f"(expected one of: {', '.join(CONFIG_FILE_NAMES)})"
    )


def _load_payload(path: str) -> dict[str, Any]:
    config_path = Path(path)
    try:
        text = config_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigurationError(f"Unable to read config {config_path}: {exc}") from exc

    try:
        if config_path.suffix.lower() == ".json":
            payload = json.loads(text)
        else:
            payload = yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise ConfigurationError(f"Unable to parse config {config_path}: {exc}") from exc

    if payload is None:
        raise ConfigurationError(f"Config file is empty: {config_path}")
    return _expect_dict(payload, "config")


def _parse_workers(raw: Any) -> Optional[int]:
    if raw is None:
        return None
    try:
        workers = int(raw)
    except (TypeError, ValueError):
        raise ConfigurationError(f"analysis.workers must be an integer, got {raw!r}") from None
    if workers < 1:
        raise ConfigurationError("analysis.workers must be at least 1")
    return workers


def load_docs_config(path: str, input_dir: Optional[str] = None) -> DocsConfig:
    """Load and validate the documentation config.

    Args:
        path: Path to a YAML or JSON config file.
        input_dir: Project root. Defaults to the config file's directory.

    Raises:
        ConfigurationError: If the file is missing, unparsable or invalid.
    """
    payload = _load_payload(path)
    root = os.path.abspath(input_dir or os.path.dirname(os.path.abspath(path)))

    project_payload = _expect_dict(payload.get("project"), "project")
    name = str(project_payload.get("name", "")).strip()
    if not name:
        raise ConfigurationError("project.name is required")
    repository = project_payload.get("repository")

    docs_payload = _expect_dict(payload.get("docs"), "docs")
    include = _expect_str_list(docs_payload.get("include"), "docs.include")
    if not include:
        raise ConfigurationError("docs.include must list at least one pattern")
    tree = docs_payload.get("tree")

    analysis_payload = _expect_dict(payload.get("analysis"), "analysis")
    analysis = AnalysisSpec(
        compile_args=_expect_str_list(
            analysis_payload.get("compile-args"), "analysis.compile-args"
        ),
        tolerate_syntax_errors=bool(analysis_payload.get("tolerate-syntax-errors", False)),
        workers=_parse_workers(analysis_payload.get("workers")),
    )

    cmake: Optional[CmakeSpec] = None
    if payload.get("cmake") is not None:
        cmake_payload = _expect_dict(payload.get("cmake"), "cmake")
        infer_from = str(cmake_payload.get("infer-args-from", "")).strip()
        if not infer_from:
            raise ConfigurationError("cmake.infer-args-from is required when cmake is set")
        cmake = CmakeSpec(
            infer_args_from=infer_from,
            build_dir=str(cmake_payload.get("build-dir", "build")).strip() or "build",
        )

    config = DocsConfig(
        input_dir=root,
        project=ProjectSpec(
            name=name,
            version=str(project_payload.get("version", "")).strip(),
            repository=str(repository).strip() if repository else None,
        ),
        docs=DocsSpec(
            include=include,
            exclude=_expect_str_list(docs_payload.get("exclude"), "docs.exclude"),
            tree=str(tree).strip().rstrip("/") if tree else None,
        ),
        analysis=analysis,
        cmake=cmake,
    )
    logger.debug(
        "Loaded config for %s: %d include pattern(s), %d exclude pattern(s)",
        config.project.name,
        len(config.docs.include),
        len(config.docs.exclude),
    )
    return config


def resolve_workers(config: DocsConfig, default: Optional[int] = None) -> int:
    """Resolve worker count: ``CXXDOCS_WORKERS`` env, then config, then default."""
    raw = os.getenv(WORKERS_ENV)
    if raw is not None and raw.strip():
        workers = _parse_workers(raw.strip())
        if workers is not None:
            return workers
    if config.analysis.workers is not None:
        return config.analysis.workers
    if default is not None:
        return default
    return max(1, min(8, os.cpu_count() or 1))


def tree_url_for(tree: Optional[str], path: str) -> Optional[str]:
    """Build the online source URL of ``path`` from the ``docs.tree`` template."""
    if not tree:
        return None
    rel = path.replace("\\", "/").lstrip("/")
    if TREE_PATH_PLACEHOLDER in tree:
        return tree.replace(TREE_PATH_PLACEHOLDER, rel)
    return f"{tree.rstrip('/')}/{rel}"
