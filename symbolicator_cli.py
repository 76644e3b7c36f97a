#!/usr/bin/env python3
"""
Crash Symbolicator - Command Line Entry Point

Quick launcher for the symbolication tools.
"""

import sys
import argparse
from pathlib import Path

from dotenv import load_dotenv

# Add crash_symbolicator to path
sys.path.insert(0, str(Path(__file__).parent))


def build_parser():
    parser = argparse.ArgumentParser(
        description='Crash Symbolicator - Resolve crash report addresses with a dSYM and atos',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Symbolicate a crash report
  %(prog)s symbolicate App.crash App.app.dSYM

  # Write the result to a file, one atos call per load address
  %(prog)s symbolicate App.crash App.app.dSYM -o App.symbolicated.crash --batch

  # List the addresses that would be resolved
  %(prog)s extract App.crash

  # Show where atos and the DWARF file were found
  %(prog)s locate App.app.dSYM

  # Launch GUI
  %(prog)s gui

Settings can also come from CRASH_SYMBOLICATOR_* variables or a .env file.
        """
    )

    parser.add_argument(
        'command',
        choices=['symbolicate', 'extract', 'locate', 'gui', 'test'],
        help='Command to execute'
    )

    parser.add_argument(
        'inputs',
        nargs='*',
        help='Crash file and/or .dSYM bundle, depending on the command'
    )

    parser.add_argument(
        '--output',
        '-o',
        help='Output file for results (default: console)'
    )

    parser.add_argument(
        '--workers',
        type=int,
        help='Number of addresses resolved in parallel'
    )

    parser.add_argument(
        '--batch',
        action='store_true',
        help='Resolve all addresses sharing a load address in one atos call'
    )

    parser.add_argument(
        '--arch',
        help='Architecture passed to atos with -arch (e.g. arm64)'
    )

    parser.add_argument(
        '--atos',
        help='Path to the atos executable, checked before the standard locations'
    )

    parser.add_argument(
        '--verbose',
        '-v',
        action='store_true',
        help='Print each atos invocation'
    )

    return parser


def load_settings(args):
    from crash_symbolicator.config import Settings

    settings = Settings.from_env()
    if args.workers is not None:
        settings.max_workers = max(1, args.workers)
    if args.batch:
        settings.batch = True
    if args.arch:
        settings.arch = args.arch
    if args.atos:
        settings.atos_path = args.atos
    if args.verbose:
        settings.verbose = True
    return settings


def cmd_symbolicate(args, parser):
    if len(args.inputs) != 2:
        parser.error("symbolicate command requires crash_file and dsym_bundle arguments")
    crash_file, dsym_bundle = args.inputs

    from crash_symbolicator.pipeline import SymbolicationPipeline

    settings = load_settings(args)
    pipeline = SymbolicationPipeline.from_settings(settings)
    text = pipeline.run(crash_file, dsym_bundle)

    if args.output:
        with open(args.output, 'w', encoding='utf-8', newline='') as f:
            f.write(text)
        print(f"Symbolicated crash saved to: {args.output}")
    else:
        sys.stdout.write(text)
        if text and not text.endswith('\n'):
            sys.stdout.write('\n')
    return 0


def cmd_extract(args, parser):
    if len(args.inputs) != 1:
        parser.error("extract command requires crash_file argument")

    from crash_symbolicator.extractor import extract_addresses
    from crash_symbolicator.pipeline import read_crash_text

    records = extract_addresses(read_crash_text(args.inputs[0]))
    if not records:
        print("No addresses found.")
        return 0

    print(f"{len(records)} addresses found:")
    for record in records:
        base = record.base_address
        base_str = f"0x{base:x}" if base is not None else "invalid (offset > address)"
        print(f"  {record.address_token}  offset=0x{record.offset:x}  base={base_str}")
    return 0


def cmd_locate(args, parser):
    if len(args.inputs) > 1:
        parser.error("locate command takes at most one dsym_bundle argument")

    from crash_symbolicator.locators import ArtifactLocator, ToolLocator

    settings = load_settings(args)
    status = 0

    tool = ToolLocator(preferred=settings.atos_path).locate()
    if tool:
        print(f"[OK] atos: {tool}")
    else:
        print("[!] atos command not found")
        status = 1

    if args.inputs:
        artifact = ArtifactLocator().locate(args.inputs[0])
        if artifact:
            print(f"[OK] DWARF: {artifact}")
        else:
            print(f"[!] DWARF file not found in dSYM: {args.inputs[0]}")
            status = 1
    return status


def main(argv=None):
    load_dotenv()
    parser = build_parser()
    args = parser.parse_args(argv)

    from crash_symbolicator.exceptions import SymbolicatorError

    # Route to appropriate handler
    try:
        if args.command == 'symbolicate':
            return cmd_symbolicate(args, parser)

        elif args.command == 'extract':
            return cmd_extract(args, parser)

        elif args.command == 'locate':
            return cmd_locate(args, parser)

        elif args.command == 'gui':
            print("Launching GUI symbolicator...")
            from crash_symbolicator.gui import main as gui_main
            gui_main()
            return 0

        elif args.command == 'test':
            print("Running test suite...")
            import pytest
            return pytest.main(['tests/', '-v'])

    except SymbolicatorError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == '__main__':
    sys.exit(main())
