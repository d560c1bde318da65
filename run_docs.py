#!/usr/bin/env python3
"""
Documentation build entry point.

Resolves the include set of a C++ project, extracts and deduplicates its
declarations, resolves cross-references and writes the documentation site.

Usage:
    python run_docs.py --input /path/to/project --output docs-out
    python run_docs.py --input . --output site --overwrite --workers 4
    python run_docs.py --input . --config docs/docs.yml --output site
"""

import argparse
import logging
import os
import shutil
import sys
from typing import Any, Dict, List, Optional

from assembly import assemble_site, write_site
from core.docs_config import (
    ConfigurationError,
    DocsConfig,
    find_config_file,
    load_docs_config,
    resolve_workers,
)
from core.structured_logging import configure_structured_logging, phase_scope, set_build_id
from crossref import link_symbols
from extraction.extractor import ExtractionStats, extract_symbols
from extraction.flags import infer_flags, merge_flags
from extraction.include_set import resolve_include_set
from extraction.provider import TreeSitterProvider

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="C++ Header Documentation Builder",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  python run_docs.py --input ./widgets --output site\n"
            "  python run_docs.py --input ./widgets --output site --overwrite\n"
        ),
    )
    parser.add_argument(
        "--input",
        default=".",
        help="Project root containing docs.yml. Default: current directory.",
    )
    parser.add_argument(
        "--output",
        required=True,
        help="Directory the documentation site is written to.",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Config file. Default: docs.yml / docs.yaml / docs.json in --input.",
    )
    parser.add_argument(
        "--overwrite",
        action="store_true",
        default=False,
        help="Replace an existing output directory.",
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=None,
        help="Parser and resolver threads. Overrides analysis.workers.",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity. Default: INFO.",
    )
    return parser.parse_args(argv)


def resolve_flags(config: DocsConfig) -> List[str]:
    """Inferred compile flags layered under the configured ``compile-args``."""
    explicit = list(config.analysis.compile_args)
    if config.cmake is None:
        return explicit
    inferred = infer_flags(config.input_dir, config.cmake.build_dir, config.cmake.infer_args_from)
    return merge_flags(inferred, explicit)


def prepare_output_dir(output_dir: str, overwrite: bool) -> None:
    """Refuse to touch an existing, non-empty output directory unless asked to.

    Raises:
        ConfigurationError: If ``output_dir`` exists and ``overwrite`` is False.
    """
    if os.path.isdir(output_dir) and os.listdir(output_dir):
        if not overwrite:
            raise ConfigurationError(
                f"Output directory {output_dir} already exists; pass --overwrite to replace it"
            )
        logger.info("Removing previous output in %s", output_dir)
        shutil.rmtree(output_dir)


def build_docs(
    config: DocsConfig,
    output_dir: str,
    workers: Optional[int] = None,
    overwrite: bool = False,
    build_id: str = "",
) -> Dict[str, Any]:
    """Run the whole documentation build.

    Every fatal condition is detected before the output directory is touched.

    Returns:
        Build report with extraction statistics and the report path.

    Raises:
        ConfigurationError: On invalid configuration or flag inference failure.
    """
    workers = workers or resolve_workers(config)
    root = config.input_dir

    with phase_scope("flags"):
        flags = resolve_flags(config)

    with phase_scope("include-set"):
        include_set = resolve_include_set(
            root,
            config.docs.include,
            config.docs.exclude,
            flags,
        )

    stats = ExtractionStats()
    with phase_scope("extract"):
        table = extract_symbols(
            include_set,
            flags,
            provider=TreeSitterProvider(
                include_set.root,
                tolerate_syntax_errors=config.analysis.tolerate_syntax_errors,
            ),
            workers=workers,
            flag_source=config.cmake.infer_args_from if config.cmake else None,
            tree=config.docs.tree,
            stats=stats,
        )

    with phase_scope("link"):
        linked = link_symbols(table, workers=workers)

    with phase_scope("assemble"):
        site = assemble_site(linked, config.project.name)

    prepare_output_dir(output_dir, overwrite)
    with phase_scope("write"):
        report_path = write_site(site, output_dir, build_id)

    for diagnostic in site.diagnostics:
        logger.warning(
            "%s [%s] %s",
            diagnostic.get("file") or "-",
            diagnostic["code"],
            diagnostic["message"],
        )
    return {
        "pages": len(site.pages),
        "functions": len(site.function_index),
        "diagnostics": len(site.diagnostics),
        "extraction": stats.to_dict(),
        "report_path": report_path,
    }


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point for the documentation build."""
    args = parse_args(argv)
    configure_structured_logging(level=getattr(logging, args.log_level))
    build_id = set_build_id()

    try:
        input_dir = os.path.abspath(args.input)
        config_path = args.config or find_config_file(input_dir)
        config = load_docs_config(config_path, input_dir)
        logger.info("Building docs for %s from %s", config.project.name, input_dir)

        report = build_docs(
            config,
            os.path.abspath(args.output),
            workers=args.workers,
            overwrite=args.overwrite,
            build_id=build_id,
        )
        logger.info(
            "Build finished: %d page(s), %d function(s), %d diagnostic(s); report at %s",
            report["pages"],
            report["functions"],
            report["diagnostics"],
            report["report_path"],
        )

    except ConfigurationError as e:
        logger.error("Configuration error: %s", e)
        sys.exit(1)
    except Exception as e:
        logger.error("Documentation build failed: %s", e, exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
