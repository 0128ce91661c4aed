#!/usr/bin/env python3
"""
dgmod CLI

A tool for analyzing the module structure of Rust crates and workspaces
and generating module dependency graphs in various formats.
"""

import argparse
import logging
import sys
from pathlib import Path

from scanner.builder import analyze_path
from scanner.config import ASCII_STYLES, FORMATS, ORIENTATIONS, load_config
from scanner.errors import AnalysisError
from exporters import to_markdown, to_ascii, to_json


def parse_args(args=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="dgmod",
        description="Generate Mermaid diagrams of Rust module dependencies.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  dgmod                              # Analyze the crate or workspace in the current directory
  dgmod path/to/crate -o modules.md  # Write the Markdown/Mermaid output to a file
  dgmod . --exclude-tests            # Leave out `tests` modules
  dgmod . --exclude 'legacy*'        # Leave out modules matching a pattern
  dgmod . -f json                    # JSON output
  dgmod . -f ascii --ascii-style=ascii  # Pure ASCII module tree
        """,
    )

    # Positional arguments
    parser.add_argument(
        "root",
        nargs="?",
        default=".",
        help="Path to the Rust crate or workspace to analyze (default: current directory)",
    )

    # Output options
    parser.add_argument(
        "-o", "--output",
        type=str,
        default=None,
        help="Output file (default: stdout)",
    )

    parser.add_argument(
        "-f", "--format",
        choices=FORMATS,
        default=None,
        help="Output format (default: mermaid)",
    )

    # Mermaid-specific options
    parser.add_argument(
        "--orientation",
        choices=ORIENTATIONS,
        default=None,
        help="Mermaid flowchart orientation (default: TD)",
    )

    parser.add_argument(
        "--dashed-imports",
        action="store_true",
        default=None,
        help="Draw edges created by use statements as dashed arrows",
    )

    # ASCII-specific options
    parser.add_argument(
        "--ascii-style",
        choices=ASCII_STYLES,
        default=None,
        help="ASCII output style: 'tree' (Unicode) or 'ascii' (pure ASCII)",
    )

    # Analysis options
    parser.add_argument(
        "--exclude-tests",
        action="store_true",
        default=None,
        help="Exclude `tests` modules from the output",
    )

    parser.add_argument(
        "--exclude",
        nargs="+",
        default=None,
        metavar="PATTERN",
        help="Module path patterns to exclude (e.g., 'tests' '*::tests')",
    )

    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Configuration file (default: dgmod.yaml or Cargo.toml metadata in the root)",
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Log progress to stderr",
    )

    return parser.parse_args(args)


def main(args=None):
    """Main entry point."""
    parsed = parse_args(args)

    logging.basicConfig(
        level=logging.DEBUG if parsed.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    # Resolve paths
    root = Path(parsed.root).resolve()
    if not root.is_dir():
        print(f"Error: '{parsed.root}' is not a directory", file=sys.stderr)
        return 1

    # Load configuration; command line flags take precedence
    try:
        config = load_config(root, Path(parsed.config) if parsed.config else None)
        config = config.merged_with(
            format=parsed.format,
            orientation=parsed.orientation,
            dashed_imports=parsed.dashed_imports,
            exclude_tests=parsed.exclude_tests,
            exclude=parsed.exclude,
            ascii_style=parsed.ascii_style,
        )
    except AnalysisError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    # Build the graphs
    try:
        analysis = analyze_path(
            root, exclude=config.exclude, exclude_tests=config.exclude_tests
        )
    except AnalysisError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    # Generate output
    if config.format == "json":
        output = to_json(analysis.graphs, base=root)
    elif config.format == "ascii":
        output = to_ascii(analysis.graphs, style=config.ascii_style)
    else:  # mermaid (default)
        output = to_markdown(
            analysis.graphs,
            orientation=config.orientation,
            dashed_imports=config.dashed_imports,
        )

    # Write output
    if parsed.output:
        try:
            output_path = Path(parsed.output)
            output_path.write_text(output, encoding="utf-8")
            print(f"Output written to: {output_path}", file=sys.stderr)
        except OSError as e:
            print(f"Error writing output: {e}", file=sys.stderr)
            return 1
    else:
        sys.stdout.write(output if output.endswith("\n") else output + "\n")

    # Report diagnostics
    for diagnostic in analysis.diagnostics:
        print(f"error: {diagnostic}", file=sys.stderr)

    return 1 if analysis.has_diagnostics else 0


if __name__ == "__main__":
    sys.exit(main())
