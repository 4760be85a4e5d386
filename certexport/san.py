# -*- coding: utf-8 -*-

"""
从SAN扩展 (OID 2.5.29.17) 的DER字节中提取DNS名称和IP地址

提供两种解析策略:
- permissive: 逐字节扫描 0x82 / 0x87 标签 (旧版本行为，默认)
- strict: 按 GeneralNames ::= SEQUENCE OF GeneralName 递归解析

两种策略都得不到结果时，依次降级为格式化文本和占位条目，从不抛出解析错误。
"""

import enum
import logging
import ipaddress
from dataclasses import dataclass
from typing import Callable, Iterator, List, Optional

from . import config
from .der import TAG_SEQUENCE, read_tlv
from .errors import DecodingError, MalformedInput, UnrecognizedEncoding

logger = logging.getLogger("cert-export.san")

# GeneralName CHOICE 中的上下文标签 (隐式, 原始类型)
TAG_DNS_NAME = 0x82    # [2] dNSName
TAG_IP_ADDRESS = 0x87  # [7] iPAddress

Formatter = Callable[[], Optional[str]]


class GeneralNameKind(enum.Enum):
    DNS = "DNS"
    IPV4 = "IPv4"
    IPV6 = "IPv6"
    UNPARSED = "Unparsed"


@dataclass(frozen=True)
class GeneralName:
    """一个SAN条目"""
    kind: GeneralNameKind
    value: str

    def __str__(self) -> str:
        if self.kind is GeneralNameKind.DNS:
            return f"DNS: {self.value}"
        if self.kind in (GeneralNameKind.IPV4, GeneralNameKind.IPV6):
            return f"IP: {self.value}"
        return self.value


def _decode_general_name(tag: int, value: bytes) -> Optional[GeneralName]:
    """将dNSName/iPAddress的值转换为GeneralName，IP长度不是4或16时返回None"""
    if tag == TAG_DNS_NAME:
        return GeneralName(GeneralNameKind.DNS, value.decode("utf-8", errors="replace"))

    if len(value) == 4:
        return GeneralName(GeneralNameKind.IPV4, str(ipaddress.IPv4Address(value)))
    if len(value) == 16:
        return GeneralName(GeneralNameKind.IPV6, str(ipaddress.IPv6Address(value)))
    logger.debug(f"跳过长度为 {len(value)} 的iPAddress")
    return None


def scan_general_names(data: bytes) -> Iterator[GeneralName]:
    """逐字节扫描 dNSName (0x82) 和 iPAddress (0x87) 条目

    只处理短格式长度。值内部的字节恰好等于 0x82/0x87 时可能误匹配，
    所以每产生一个条目，扫描位置直接跳过该值。
    """
    i = 0
    size = len(data)
    while i < size:
        tag = data[i]
        if tag != TAG_DNS_NAME and tag != TAG_IP_ADDRESS:
            i += 1
            continue

        if i + 1 >= size:
            break

        length = data[i + 1]
        start = i + 2
        end = start + length
        if length >= 0x80 or end > size:
            # 声明的长度越界，放弃这个条目，从下一个字节继续
            logger.debug(f"偏移 {i} 处的标签 {tag:#04x} 长度无效: {length}")
            i += 1
            continue

        entry = _decode_general_name(tag, data[start:end])
        if entry is None:
            # 没有产生条目的值不算已读取，从长度字节之后继续扫描
            i = start
            continue
        yield entry
        i = end


def parse_general_names(data: bytes) -> Iterator[GeneralName]:
    """严格解析 GeneralNames SEQUENCE

    Raises:
        MalformedInput: 外层不是SEQUENCE、TLV越界或有多余字节
    """
    tag, body, end = read_tlv(data, 0)
    if tag != TAG_SEQUENCE:
        raise MalformedInput(f"expected SEQUENCE, got tag {tag:#04x}")
    if end != len(data):
        raise MalformedInput(f"{len(data) - end} trailing bytes after GeneralNames")

    offset = 0
    while offset < len(body):
        tag, value, offset = read_tlv(body, offset)
        if tag == TAG_DNS_NAME or tag == TAG_IP_ADDRESS:
            entry = _decode_general_name(tag, value)
            if entry is not None:
                yield entry
        else:
            # otherName、rfc822Name、URI等其他类型
            logger.debug(f"跳过GeneralName标签 {tag:#04x}")


STRATEGIES = {
    "permissive": scan_general_names,
    "strict": parse_general_names,
}


def _fallback_entries(formatter: Optional[Formatter]) -> Iterator[GeneralName]:
    """使用平台提供的格式化文本，否则返回占位条目"""
    lines: List[str] = []
    if formatter is not None:
        try:
            text = formatter()
        except Exception as e:
            logger.debug(f"获取SAN格式化文本时出错: {e}")
            text = None
        if text:
            lines = [line.strip() for line in text.splitlines() if line.strip()]

    if not lines:
        yield GeneralName(GeneralNameKind.UNPARSED, config.SAN_UNPARSED_PLACEHOLDER)
        return

    for line in lines:
        yield GeneralName(GeneralNameKind.UNPARSED, line)


def _extract(data: bytes, scan, formatter: Optional[Formatter]) -> Iterator[GeneralName]:
    count = 0
    try:
        for entry in scan(data):
            count += 1
            yield entry
        if count == 0:
            raise UnrecognizedEncoding("no dNSName or iPAddress entries found")
    except DecodingError as e:
        if count:
            # 已经得到部分条目，保留它们
            logger.debug(f"SAN解析在 {count} 个条目后中止: {e}")
            return
        logger.debug(f"无法解析SAN扩展，使用降级结果: {e}")
        yield from _fallback_entries(formatter)


def extract_san_entries(der_bytes: bytes,
                        formatter: Optional[Formatter] = None,
                        strategy: str = config.DEFAULT_SAN_STRATEGY) -> Iterator[GeneralName]:
    """提取SAN条目

    Args:
        der_bytes: SAN扩展的extnValue内容 (已去掉外层OCTET STRING)
        formatter: 可选，返回扩展的可读文本，用于降级
        strategy: "permissive" 或 "strict"

    Returns:
        按扫描顺序惰性产生的GeneralName，至少包含一个条目
    """
    try:
        scan = STRATEGIES[strategy]
    except KeyError:
        raise ValueError(f"unknown SAN strategy: {strategy}") from None
    return _extract(bytes(der_bytes), scan, formatter)
