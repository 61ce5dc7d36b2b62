"""Command line client: submit a job (or resume one by id) and save its outputs."""

from __future__ import annotations

import argparse
import dataclasses
import logging
import sys
from enum import Enum
from pathlib import Path
from typing import Callable, Sequence

from pydantic import ValidationError

from retdec_client.config import settings
from retdec_client.descriptors import (
    DESCRIPTOR_TYPES,
    Architecture,
    CompCompiler,
    CompOptimizations,
    DecompOptimizations,
    DecompVarNames,
    Endianness,
    FileFormat,
    GraphFormat,
    JobDescriptor,
    SelDecompDecoding,
    TargetLanguage,
)
from retdec_client.errors import RetdecError
from retdec_client.models import OutputKind
from retdec_client.services.pipeline import RetdecService
from retdec_client.services.storage import FileSaveDecompilationResult

ALL_MODES = ("c", "bin", "raw")


def _yes_no(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in ("yes", "true"):
        return True
    if lowered in ("no", "false"):
        return False
    raise argparse.ArgumentTypeError(f"expected yes or no, got {value!r}")


def _csv(value: str) -> tuple[str, ...]:
    return tuple(item.strip() for item in value.split(",") if item.strip())


def _address(value: str) -> int:
    try:
        return int(value, 0)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not an address: {value!r}") from None


def _choice(enum_cls: type[Enum]) -> Callable[[str], Enum]:
    def convert(value: str) -> Enum:
        for member in enum_cls:
            if member.value.lower() == value.strip().lower():
                return member
        choices = "|".join(member.value for member in enum_cls)
        raise argparse.ArgumentTypeError(f"expected one of {choices}, got {value!r}")

    convert.__name__ = enum_cls.__name__
    return convert


def _output_kinds(value: str) -> frozenset[OutputKind]:
    convert = _choice(OutputKind)
    return frozenset(convert(item) for item in _csv(value))


# field name -> (modes accepting it, converter, help)
FIELD_OPTIONS: dict[str, tuple[tuple[str, ...], Callable[[str], object], str]] = {
    "target_language": (ALL_MODES, _choice(TargetLanguage), "target high-level language"),
    "graph_format": (ALL_MODES, _choice(GraphFormat), "format of generated call and control-flow graphs"),
    "decomp_var_names": (ALL_MODES, _choice(DecompVarNames), "variable naming style"),
    "decomp_optimizations": (ALL_MODES, _choice(DecompOptimizations), "decompiler optimization level"),
    "decomp_unreachable_functions": (ALL_MODES, _yes_no, "decompile unreachable functions"),
    "decomp_emit_address": (ALL_MODES, _yes_no, "emit address comments"),
    "generate_call_graph": (ALL_MODES, _yes_no, "generate a call graph"),
    "generate_control_flow_graphs": (ALL_MODES, _yes_no, "generate per-function control-flow graphs"),
    "generate_archive": (ALL_MODES, _yes_no, "generate an archive with the results"),
    "architecture": (ALL_MODES, _choice(Architecture), "target architecture"),
    "file_format": (("c", "raw"), _choice(FileFormat), "executable file format"),
    "comp_compiler": (("c",), _choice(CompCompiler), "compiler used on the submitted source"),
    "comp_optimizations": (("c",), _choice(CompOptimizations), "compiler optimization level"),
    "comp_debug": (("c",), _yes_no, "compile with debugging information"),
    "comp_strip": (("c",), _yes_no, "strip the compiled executable"),
    "sel_decomp_funcs": (("bin",), _csv, "functions to decompile (f1,f2,...)"),
    "sel_decomp_ranges": (("bin",), _csv, "address ranges to decompile (0x10-0x20,...)"),
    "sel_decomp_decoding": (("bin",), _choice(SelDecompDecoding), "which instructions to decode"),
    "pdb": (("bin",), Path, "PDB debug file for the executable"),
    "raw_endian": (("raw",), _choice(Endianness), "endianness of the machine code"),
    "raw_entry_point": (("raw",), _address, "entry point address"),
    "raw_section_vma": (("raw",), _address, "virtual memory address of the code"),
}


def _flag(field: str) -> str:
    return "--" + field.replace("_", "-")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="retdec-client", description=__doc__)
    parser.add_argument("--apikey", help="API key (default: $RETDEC_API_KEY)")
    parser.add_argument("--id", help="resume a previously submitted job")
    parser.add_argument("--input", type=Path, help="file to decompile")
    parser.add_argument("--outdir", type=Path, default=settings.output_dir, help="output directory")
    parser.add_argument("--mode", choices=ALL_MODES, default="c", help="decompilation mode")
    parser.add_argument("--outputs", type=_output_kinds, help="output kinds to fetch (hll,dsm,...); default all")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")

    options = parser.add_argument_group("decompilation options")
    for field, (modes, convert, help_text) in FIELD_OPTIONS.items():
        suffix = "" if modes == ALL_MODES else f" [{', '.join(modes)}]"
        options.add_argument(_flag(field), dest=field, type=convert, help=help_text + suffix)
    return parser


def build_descriptor(args: argparse.Namespace) -> JobDescriptor:
    """Build the descriptor for ``args.mode``; options left out stay unset."""
    fields: dict[str, object] = {}
    for field, (modes, _, _) in FIELD_OPTIONS.items():
        value = getattr(args, field)
        if value is None:
            continue
        if args.mode not in modes:
            raise ValueError(f"{_flag(field)} does not apply to {args.mode} mode")
        fields[field] = value
    return DESCRIPTOR_TYPES[args.mode](input=args.input, **fields)


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if args.id is None and args.input is None:
        parser.error("--input is required unless --id is given")

    config = dataclasses.replace(settings, api_key=args.apikey or settings.api_key)
    service = RetdecService(config)
    result = FileSaveDecompilationResult(args.outdir, kinds=args.outputs)

    if args.id is not None:
        handle = service.handle_for_id(args.id)
    else:
        try:
            descriptor = build_descriptor(args)
        except (ValueError, ValidationError) as exc:
            parser.error(str(exc))
        try:
            handle = service.decompile(descriptor)
        except (RetdecError, OSError) as exc:
            print(f"error: {exc}", file=sys.stderr)
            return 1

    job = service.run_async(handle, result)
    try:
        job.wait()
    except KeyboardInterrupt:
        print("cancelling; interrupt again to stop waiting", file=sys.stderr)
        job.cancel()
        try:
            job.wait()
        except KeyboardInterrupt:
            print(f"error: interrupted before job {handle.id} finished cancelling", file=sys.stderr)
            return 130

    if job.exception is not None:
        print(f"error: {job.exception}", file=sys.stderr)
        return 1
    return 0


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
