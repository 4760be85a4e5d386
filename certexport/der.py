# -*- coding: utf-8 -*-

"""
DER TLV (Tag-Length-Value) 基本编解码
"""

from typing import Tuple

from .errors import MalformedInput, UnsupportedLength

TAG_INTEGER = 0x02
TAG_SEQUENCE = 0x30

# 长格式长度最多支持4个字节
MAX_LENGTH_OCTETS = 4


def encode_length(length: int) -> bytes:
    """按最短形式编码DER长度

    Args:
        length: 值的字节长度

    Returns:
        短格式1字节，或 0x81/0x82 开头的长格式
    """
    if length < 0x80:
        return bytes([length])
    elif length < 0x100:
        return bytes([0x81, length])
    elif length < 0x10000:
        return bytes([0x82, length >> 8, length & 0xFF])
    raise UnsupportedLength(length)


def decode_length(data: bytes, offset: int) -> Tuple[int, int]:
    """从offset处解码DER长度，返回 (长度, 值的起始位置)"""
    if offset >= len(data):
        raise MalformedInput(f"length byte missing at offset {offset}")

    length_byte = data[offset]
    if length_byte < 0x80:
        # 短格式: 1字节长度
        return length_byte, offset + 1

    num_octets = length_byte & 0x7F
    if num_octets == 0:
        raise MalformedInput(f"indefinite length at offset {offset}")
    if num_octets > MAX_LENGTH_OCTETS:
        raise MalformedInput(f"{num_octets} length octets at offset {offset}")

    start = offset + 1
    end = start + num_octets
    if end > len(data):
        raise MalformedInput(f"length octets truncated at offset {offset}")
    return int.from_bytes(data[start:end], "big"), end


def read_tlv(data: bytes, offset: int = 0) -> Tuple[int, bytes, int]:
    """读取一个TLV，返回 (标签, 值, 下一个TLV的位置)"""
    if offset >= len(data):
        raise MalformedInput(f"tag byte missing at offset {offset}")

    tag = data[offset]
    if tag & 0x1F == 0x1F:
        raise MalformedInput(f"high tag number form at offset {offset}")

    length, start = decode_length(data, offset + 1)
    end = start + length
    if end > len(data):
        raise MalformedInput(
            f"tag {tag:#04x} declares {length} bytes but only {len(data) - start} remain")
    return tag, data[start:end], end


def encode_tlv(tag: int, value: bytes) -> bytes:
    return bytes([tag]) + encode_length(len(value)) + value


def encode_integer(raw: bytes, normalize_sign: bool = False) -> bytes:
    """将大端字节编码为INTEGER

    默认原样写入调用方提供的字节；normalize_sign 为 True 时，
    如果最高位为1则补一个 0x00，避免被解析为负数。
    """
    if normalize_sign and raw and raw[0] & 0x80:
        raw = b"\x00" + raw
    return encode_tlv(TAG_INTEGER, raw)


def int_to_der_bytes(value: int) -> bytes:
    """非负整数转为最短的DER INTEGER内容字节"""
    if value < 0:
        raise ValueError("negative integers are not supported")
    # bit_length + 8 为符号位预留空间，0 编码为 b"\x00"
    return value.to_bytes((value.bit_length() + 8) // 8, "big")
