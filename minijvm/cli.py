#!/usr/bin/env python3
"""
Command-line interface for minijvm - run, inspect and assemble class files.
"""

import argparse
import logging
import sys
from pathlib import Path


def _configure_logging(verbose: bool):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(name)s: %(message)s",
        stream=sys.stderr,
    )


def _check_exists(path: Path):
    if not path.exists():
        print(f"Error: File not found: {path}", file=sys.stderr)
        sys.exit(1)


def run_command(args):
    """Parse a class file and interpret one of its methods."""
    from .dump import log_class
    from .errors import JVMError
    from .interpreter import Interpreter
    from .natives import default_bridge
    from .reader import parse_class_file

    path = Path(args.classfile)
    _check_exists(path)

    try:
        class_file = parse_class_file(path)
        if args.verbose:
            log_class(class_file)
        interpreter = Interpreter(class_file, default_bridge(sys.stdout), trace=args.verbose)
        interpreter.invoke(args.method, args.descriptor)
    except JVMError as e:
        print(f"Error running {path}: {e}", file=sys.stderr)
        sys.exit(1)
    finally:
        sys.stdout.flush()


def dump_command(args):
    """Print the decoded structure of class files."""
    from .dump import dump_class
    from .errors import JVMError
    from .reader import parse_class_file

    for source_file in args.files:
        path = Path(source_file)
        _check_exists(path)

        try:
            class_file = parse_class_file(path)
        except JVMError as e:
            print(f"Error reading {path}: {e}", file=sys.stderr)
            sys.exit(1)
        for line in dump_class(class_file):
            print(line)


def assemble_command(args):
    """Assemble .jasm sources to .class files."""
    from .assembler import Assembler
    from .errors import JVMError
    from .reader import parse_class_bytes

    assembler = Assembler()
    output_dir = Path(args.output) if args.output else Path(".")
    output_dir.mkdir(parents=True, exist_ok=True)

    total_classes = 0
    for source_file in args.files:
        path = Path(source_file)
        _check_exists(path)

        try:
            data = assembler.assemble_file(path)
            name = parse_class_bytes(data).name
        except JVMError as e:
            print(f"Error assembling {path}: {e}", file=sys.stderr)
            sys.exit(1)

        class_path = output_dir / f"{name}.class"
        class_path.parent.mkdir(parents=True, exist_ok=True)
        with open(class_path, "wb") as f:
            f.write(data)
        if args.verbose:
            print(f"Wrote {class_path}")
        total_classes += 1

    if not args.quiet:
        print(f"Assembled {total_classes} class(es)")


def main(argv=None):
    """Main entry point for minijvm CLI."""
    parser = argparse.ArgumentParser(
        prog="minijvm",
        description="Minimal JVM - parse class files and interpret a subset of bytecode",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Run command
    run_parser = subparsers.add_parser(
        "run",
        help="Interpret a method of a class file",
    )
    run_parser.add_argument(
        "classfile",
        help="Class file to run",
    )
    run_parser.add_argument(
        "-m", "--method",
        default="main",
        help="Name of the method to run (default: main)",
    )
    run_parser.add_argument(
        "-d", "--descriptor",
        help="Descriptor selecting among overloads, e.g. '([Ljava/lang/String;)V'",
    )
    run_parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Trace parsing and each executed instruction on stderr",
    )
    run_parser.set_defaults(func=run_command)

    # Dump command
    dump_parser = subparsers.add_parser(
        "dump",
        help="Print constant pool, methods and disassembled code",
    )
    dump_parser.add_argument(
        "files",
        nargs="+",
        help="Class files to dump",
    )
    dump_parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Log parser progress on stderr",
    )
    dump_parser.set_defaults(func=dump_command)

    # Assemble command
    assemble_parser = subparsers.add_parser(
        "assemble",
        help="Assemble .jasm sources to .class files",
    )
    assemble_parser.add_argument(
        "files",
        nargs="+",
        help="Assembly source files",
    )
    assemble_parser.add_argument(
        "-o", "--output",
        help="Output directory for .class files (default: current directory)",
    )
    assemble_parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Print each generated class file",
    )
    assemble_parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Suppress summary output",
    )
    assemble_parser.set_defaults(func=assemble_command)

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    _configure_logging(args.verbose)
    args.func(args)


if __name__ == "__main__":
    main()
