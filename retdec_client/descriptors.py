from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class TargetLanguage(str, Enum):
    C = "c"
    PY = "py"


class GraphFormat(str, Enum):
    PNG = "png"
    SVG = "svg"
    PDF = "pdf"


class DecompVarNames(str, Enum):
    READABLE = "readable"
    ADDRESS = "address"
    HUNGARIAN = "hungarian"
    SIMPLE = "simple"
    UNIFIED = "unified"


class DecompOptimizations(str, Enum):
    NONE = "none"
    LIMITED = "limited"
    NORMAL = "normal"
    AGGRESSIVE = "aggressive"


class Architecture(str, Enum):
    AUTO = "auto"
    X86 = "x86"
    ARM = "arm"
    THUMB = "thumb"
    MIPS = "mips"
    PIC32 = "pic32"
    POWERPC = "powerpc"


class FileFormat(str, Enum):
    ELF = "elf"
    PE = "pe"


class CompCompiler(str, Enum):
    GCC = "gcc"
    CLANG = "clang"


class CompOptimizations(str, Enum):
    O0 = "O0"
    O1 = "O1"
    O2 = "O2"
    O3 = "O3"


class SelDecompDecoding(str, Enum):
    EVERYTHING = "everything"
    ONLY = "only"


class Endianness(str, Enum):
    LITTLE = "little"
    BIG = "big"


WIRE_TOKENS: dict[Enum, str] = {
    TargetLanguage.C: "c",
    TargetLanguage.PY: "py",
    GraphFormat.PNG: "png",
    GraphFormat.SVG: "svg",
    GraphFormat.PDF: "pdf",
    DecompVarNames.READABLE: "readable",
    DecompVarNames.ADDRESS: "address",
    DecompVarNames.HUNGARIAN: "hungarian",
    DecompVarNames.SIMPLE: "simple",
    DecompVarNames.UNIFIED: "unified",
    DecompOptimizations.NONE: "none",
    DecompOptimizations.LIMITED: "limited",
    DecompOptimizations.NORMAL: "normal",
    DecompOptimizations.AGGRESSIVE: "aggressive",
    Architecture.AUTO: "auto",
    Architecture.X86: "x86",
    Architecture.ARM: "arm",
    Architecture.THUMB: "thumb",
    Architecture.MIPS: "mips",
    Architecture.PIC32: "pic32",
    Architecture.POWERPC: "powerpc",
    FileFormat.ELF: "elf",
    FileFormat.PE: "pe",
    CompCompiler.GCC: "gcc",
    CompCompiler.CLANG: "clang",
    CompOptimizations.O0: "-O0",
    CompOptimizations.O1: "-O1",
    CompOptimizations.O2: "-O2",
    CompOptimizations.O3: "-O3",
    SelDecompDecoding.EVERYTHING: "everything",
    SelDecompDecoding.ONLY: "only",
    Endianness.LITTLE: "little",
    Endianness.BIG: "big",
}

WIRE_ENUMS: tuple[type[Enum], ...] = (
    TargetLanguage,
    GraphFormat,
    DecompVarNames,
    DecompOptimizations,
    Architecture,
    FileFormat,
    CompCompiler,
    CompOptimizations,
    SelDecompDecoding,
    Endianness,
)

_missing = [member for enum_cls in WIRE_ENUMS for member in enum_cls if member not in WIRE_TOKENS]
if _missing:
    raise RuntimeError(f"No wire token declared for {_missing}")


def wire_token(value: Enum) -> str:
    try:
        return WIRE_TOKENS[value]
    except KeyError:
        raise ValueError(f"No wire token declared for {value!r}") from None


class _Descriptor(BaseModel):
    # None on any optional field means "leave it to the service"; it is never sent.
    model_config = ConfigDict(frozen=True, extra="forbid")

    input: Path
    target_language: TargetLanguage | None = None
    graph_format: GraphFormat | None = None
    decomp_var_names: DecompVarNames | None = None
    decomp_optimizations: DecompOptimizations | None = None
    decomp_unreachable_functions: bool | None = None
    decomp_emit_address: bool | None = None
    generate_call_graph: bool | None = None
    generate_control_flow_graphs: bool | None = None
    generate_archive: bool | None = None

    def form_fields(self) -> dict[str, object]:
        """Field name -> value for every field, in declaration order."""
        return {name: getattr(self, name) for name in type(self).model_fields}


class CDescriptor(_Descriptor):
    """Compile the submitted C source on the service, then decompile the result."""

    mode: Literal["c"] = "c"
    architecture: Architecture | None = None
    file_format: FileFormat | None = None
    comp_compiler: CompCompiler | None = None
    comp_optimizations: CompOptimizations | None = None
    comp_debug: bool | None = None
    comp_strip: bool | None = None


class BinDescriptor(_Descriptor):
    """Decompile an executable (ELF, PE, ...)."""

    mode: Literal["bin"] = "bin"
    architecture: Architecture | None = None
    sel_decomp_funcs: tuple[str, ...] | None = None
    sel_decomp_ranges: tuple[str, ...] | None = None
    sel_decomp_decoding: SelDecompDecoding | None = None
    pdb: Path | None = None


class RawDescriptor(_Descriptor):
    """Decompile raw machine code; architecture and file format are mandatory."""

    mode: Literal["raw"] = "raw"
    architecture: Architecture
    file_format: FileFormat
    raw_endian: Endianness | None = None
    raw_entry_point: int | None = Field(default=None, ge=0)
    raw_section_vma: int | None = Field(default=None, ge=0)


JobDescriptor = Annotated[Union[CDescriptor, BinDescriptor, RawDescriptor], Field(discriminator="mode")]

DESCRIPTOR_TYPES: dict[str, type[_Descriptor]] = {
    "c": CDescriptor,
    "bin": BinDescriptor,
    "raw": RawDescriptor,
}
