# -*- coding: utf-8 -*-

"""
编码/解码错误类型
"""

from typing import Iterable


class CertExportError(Exception):
    """所有证书导出错误的基类"""


class EncodingError(CertExportError, ValueError):
    """密钥材料编码失败，必须传递给调用方"""


class IncompleteKeyParameters(EncodingError):
    """RSA私钥参数缺失或为空"""

    def __init__(self, missing: Iterable[str]):
        self.missing = tuple(missing)
        super().__init__(f"RSA private key parameters missing: {', '.join(self.missing)}")


class UnsupportedLength(EncodingError):
    """DER长度超出支持范围 (>= 0x10000)"""

    def __init__(self, length: int):
        self.length = length
        super().__init__(f"DER length {length:#x} is not supported")


class DecodingError(CertExportError, ValueError):
    """解码失败，SAN提取时会被降级处理"""


class MalformedInput(DecodingError):
    """TLV声明的长度超出缓冲区，或结构不合法"""


class UnrecognizedEncoding(DecodingError):
    """没有找到任何可识别的标签"""
