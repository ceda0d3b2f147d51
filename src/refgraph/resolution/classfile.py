"""
Minimal reader for JVM class files found in dependency archives.

Only the parts needed for member lookup are decoded: the constant pool,
access flags, this/super class, interfaces, field and method signatures.
Attribute bodies are skipped, so generic signatures are not recovered;
member types are the erased types from the descriptors.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass, field

from refgraph.errors import ClassFileError

MAGIC = 0xCAFEBABE

ACC_STATIC = 0x0008
ACC_BRIDGE = 0x0040
ACC_VARARGS = 0x0080
ACC_INTERFACE = 0x0200
ACC_SYNTHETIC = 0x1000
ACC_ANNOTATION = 0x2000
ACC_ENUM = 0x4000

# Constant pool tag -> payload size in bytes (Utf8 is variable)
_FIXED_SIZES = {
    3: 4,  # Integer
    4: 4,  # Float
    5: 8,  # Long
    6: 8,  # Double
    7: 2,  # Class
    8: 2,  # String
    9: 4,  # Fieldref
    10: 4,  # Methodref
    11: 4,  # InterfaceMethodref
    12: 4,  # NameAndType
    15: 3,  # MethodHandle
    16: 2,  # MethodType
    17: 4,  # Dynamic
    18: 4,  # InvokeDynamic
    19: 2,  # Module
    20: 2,  # Package
}

_BASE_TYPES = {
    "B": "byte",
    "C": "char",
    "D": "double",
    "F": "float",
    "I": "int",
    "J": "long",
    "S": "short",
    "Z": "boolean",
    "V": "void",
}


@dataclass
class MemberInfo:
    """A field or method as declared in a class file."""

    name: str
    descriptor: str
    access_flags: int

    @property
    def is_static(self) -> bool:
        return bool(self.access_flags & ACC_STATIC)

    @property
    def is_varargs(self) -> bool:
        return bool(self.access_flags & ACC_VARARGS)

    @property
    def is_synthetic(self) -> bool:
        return bool(self.access_flags & (ACC_SYNTHETIC | ACC_BRIDGE))


@dataclass
class ClassFile:
    """Decoded class file header and members."""

    name: str
    access_flags: int
    super_name: str | None
    interfaces: tuple[str, ...] = ()
    fields: list[MemberInfo] = field(default_factory=list)
    methods: list[MemberInfo] = field(default_factory=list)

    @property
    def kind(self) -> str:
        if self.access_flags & ACC_ANNOTATION:
            return "annotation"
        if self.access_flags & ACC_INTERFACE:
            return "interface"
        if self.access_flags & ACC_ENUM:
            return "enum"
        if self.super_name == "java.lang.Record":
            return "record"
        return "class"


def binary_to_qualified(internal_name: str) -> str:
    """``java/util/Map$Entry`` -> ``java.util.Map.Entry``."""
    return internal_name.replace("/", ".").replace("$", ".")


def parse_field_descriptor(descriptor: str, pos: int = 0) -> tuple[str, int]:
    """
    Decode one field type starting at ``pos``.

    Returns the Java spelling of the type and the index just past it.
    """
    depth = 0
    try:
        while descriptor[pos] == "[":
            depth += 1
            pos += 1
        tag = descriptor[pos]
        if tag == "L":
            end = descriptor.index(";", pos)
            name = binary_to_qualified(descriptor[pos + 1 : end])
            pos = end + 1
        elif tag in _BASE_TYPES:
            name = _BASE_TYPES[tag]
            pos += 1
        else:
            raise ClassFileError(f"Bad descriptor {descriptor!r} at {pos}")
    except (IndexError, ValueError) as e:
        raise ClassFileError(f"Truncated descriptor {descriptor!r}") from e
    return name + "[]" * depth, pos


def parse_method_descriptor(descriptor: str) -> tuple[tuple[str, ...], str]:
    """``(ILjava/lang/String;)V`` -> (("int", "java.lang.String"), "void")."""
    if not descriptor.startswith("("):
        raise ClassFileError(f"Bad method descriptor {descriptor!r}")
    params = []
    pos = 1
    while pos < len(descriptor) and descriptor[pos] != ")":
        param, pos = parse_field_descriptor(descriptor, pos)
        params.append(param)
    if pos >= len(descriptor):
        raise ClassFileError(f"Unterminated method descriptor {descriptor!r}")
    return_type, _ = parse_field_descriptor(descriptor, pos + 1)
    return tuple(params), return_type


class _Reader:
    def __init__(self, data: bytes) -> None:
        self.data = data
        self.pos = 0

    def take(self, fmt: str) -> tuple:
        size = struct.calcsize(fmt)
        if self.pos + size > len(self.data):
            raise ClassFileError("Unexpected end of class file")
        values = struct.unpack_from(fmt, self.data, self.pos)
        self.pos += size
        return values

    def u2(self) -> int:
        return self.take(">H")[0]

    def skip(self, count: int) -> None:
        if self.pos + count > len(self.data):
            raise ClassFileError("Unexpected end of class file")
        self.pos += count


def read_class_file(data: bytes) -> ClassFile:
    """
    Decode a class file.

    Raises:
        ClassFileError: If the bytes are not a well-formed class file.
    """
    reader = _Reader(data)
    magic, _minor, _major = reader.take(">IHH")
    if magic != MAGIC:
        raise ClassFileError(f"Bad magic 0x{magic:08X}")

    pool = _read_constant_pool(reader)

    access_flags, this_index, super_index = reader.take(">HHH")
    name = _class_name(pool, this_index)
    super_name = _class_name(pool, super_index) if super_index else None
    interfaces = tuple(_class_name(pool, reader.u2()) for _ in range(reader.u2()))

    fields = _read_members(reader, pool)
    methods = _read_members(reader, pool)

    return ClassFile(
        name=name,
        access_flags=access_flags,
        super_name=super_name,
        interfaces=interfaces,
        fields=fields,
        methods=methods,
    )


def _read_constant_pool(reader: _Reader) -> dict[int, tuple[int, object]]:
    count = reader.u2()
    pool: dict[int, tuple[int, object]] = {}
    index = 1
    while index < count:
        (tag,) = reader.take(">B")
        if tag == 1:
            length = reader.u2()
            start = reader.pos
            reader.skip(length)
            pool[index] = (tag, reader.data[start : start + length].decode("utf-8", errors="replace"))
        elif tag == 7:
            pool[index] = (tag, reader.u2())
        elif tag in _FIXED_SIZES:
            reader.skip(_FIXED_SIZES[tag])
            pool[index] = (tag, None)
        else:
            raise ClassFileError(f"Unknown constant pool tag {tag} at index {index}")
        # Long and Double take two slots
        index += 2 if tag in (5, 6) else 1
    return pool


def _utf8(pool: dict[int, tuple[int, object]], index: int) -> str:
    entry = pool.get(index)
    if entry is None or entry[0] != 1:
        raise ClassFileError(f"Constant {index} is not a Utf8 entry")
    return str(entry[1])


def _class_name(pool: dict[int, tuple[int, object]], index: int) -> str:
    entry = pool.get(index)
    if entry is None or entry[0] != 7:
        raise ClassFileError(f"Constant {index} is not a Class entry")
    return binary_to_qualified(_utf8(pool, int(entry[1])))  # type: ignore[arg-type]


def _read_members(reader: _Reader, pool: dict[int, tuple[int, object]]) -> list[MemberInfo]:
    members = []
    for _ in range(reader.u2()):
        access_flags, name_index, descriptor_index = reader.take(">HHH")
        for _ in range(reader.u2()):
            reader.u2()
            (length,) = reader.take(">I")
            reader.skip(length)
        members.append(
            MemberInfo(
                name=_utf8(pool, name_index),
                descriptor=_utf8(pool, descriptor_index),
                access_flags=access_flags,
            )
        )
    return members
