import hashlib
import struct
import zlib


def object_header(type_: int, size: int) -> bytes:
    byte = (type_ << 4) | (size & 0x0F)
    size >>= 4
    out = bytearray()
    while size:
        out.append(byte | 0x80)
        byte = size & 0x7F
        size >>= 7
    out.append(byte)
    return bytes(out)


def encode_size(size: int) -> bytes:
    out = bytearray()
    while True:
        byte = size & 0x7F
        size >>= 7
        if size:
            out.append(byte | 0x80)
        else:
            out.append(byte)
            return bytes(out)


def encode_base_offset(offset: int) -> bytes:
    out = [offset & 0x7F]
    offset >>= 7
    while offset:
        offset -= 1
        out.insert(0, 0x80 | (offset & 0x7F))
        offset >>= 7
    return bytes(out)


def record(type_: int, payload: bytes, base: bytes = b"") -> bytes:
    return object_header(type_, len(payload)) + base + zlib.compress(payload)


def delta(source: bytes, target_size: int, *instructions: bytes) -> bytes:
    return encode_size(len(source)) + encode_size(target_size) + b"".join(instructions)


def insert(data: bytes) -> bytes:
    return bytes([len(data)]) + data


def copy(offset: int, size: int) -> bytes:
    cmd = 0x80
    operands = bytearray()
    for i in range(4):
        byte = (offset >> (8 * i)) & 0xFF
        if byte:
            cmd |= 1 << i
            operands.append(byte)
    for i in range(3):
        byte = (size >> (8 * i)) & 0xFF
        if byte:
            cmd |= 1 << (4 + i)
            operands.append(byte)
    return bytes([cmd]) + bytes(operands)


def build_pack(*records: bytes, version: int = 2) -> bytes:
    body = b"PACK" + struct.pack(">II", version, len(records)) + b"".join(records)
    return body + hashlib.sha1(body).digest()


def sha(kind: str, content: bytes) -> str:
    return hashlib.sha1(f"{kind} {len(content)}\0".encode() + content).hexdigest()


def tree_entry(mode: str, name: str, object_id: str) -> bytes:
    return f"{mode} {name}".encode() + b"\0" + bytes.fromhex(object_id)
