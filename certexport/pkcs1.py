# -*- coding: utf-8 -*-

"""
将RSA私钥参数编码为PKCS#1 RSAPrivateKey (DER)

    RSAPrivateKey ::= SEQUENCE {
        version           INTEGER,
        modulus           INTEGER,  -- n
        publicExponent    INTEGER,  -- e
        privateExponent   INTEGER,  -- d
        prime1            INTEGER,  -- p
        prime2            INTEGER,  -- q
        exponent1         INTEGER,  -- d mod (p-1)
        exponent2         INTEGER,  -- d mod (q-1)
        coefficient       INTEGER   -- (inverse of q) mod p
    }

只在平台的PKCS#8和PKCS#1导出都不可用时使用。
"""

import logging
from dataclasses import dataclass, fields
from typing import List, Optional

from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateNumbers

from . import config
from .der import TAG_SEQUENCE, encode_integer, encode_tlv, int_to_der_bytes
from .errors import EncodingError, IncompleteKeyParameters

logger = logging.getLogger("cert-export.pkcs1")


@dataclass
class RsaPrivateKeyParams:
    """RSA私钥的数值参数，每个字段为无符号大端字节，字段顺序即PKCS#1中的顺序"""
    version: Optional[bytes] = b"\x00"
    modulus: Optional[bytes] = None
    public_exponent: Optional[bytes] = None
    private_exponent: Optional[bytes] = None
    prime1: Optional[bytes] = None
    prime2: Optional[bytes] = None
    exponent1: Optional[bytes] = None
    exponent2: Optional[bytes] = None
    coefficient: Optional[bytes] = None

    def missing_fields(self) -> List[str]:
        return [f.name for f in fields(self) if not getattr(self, f.name)]

    def ordered_values(self) -> List[bytes]:
        return [getattr(self, f.name) for f in fields(self)]


def encode_pkcs1_rsa_private_key(params: RsaPrivateKeyParams,
                                 normalize_sign: bool = config.NORMALIZE_INTEGER_SIGN) -> bytes:
    """编码PKCS#1 RSAPrivateKey

    Args:
        params: 九个字段都必须存在且非空
        normalize_sign: 最高位为1的整数是否补 0x00；False时原样写入调用方的字节

    Raises:
        IncompleteKeyParameters: 有字段缺失
        EncodingError: version不是0 (two-prime RSA只定义了版本0)
        UnsupportedLength: 某个长度 >= 0x10000
    """
    missing = params.missing_fields()
    if missing:
        raise IncompleteKeyParameters(missing)
    if bytes(params.version) != b"\x00":
        raise EncodingError(f"unsupported RSAPrivateKey version: {bytes(params.version).hex()}")

    inner = b"".join(encode_integer(bytes(value), normalize_sign)
                     for value in params.ordered_values())
    der = encode_tlv(TAG_SEQUENCE, inner)
    logger.debug(f"手动编码PKCS#1私钥: {len(der)} 字节")
    return der


def rsa_params_from_numbers(numbers: RSAPrivateNumbers) -> RsaPrivateKeyParams:
    """从cryptography的RSAPrivateNumbers生成参数，字节已是DER规范形式"""
    public = numbers.public_numbers
    return RsaPrivateKeyParams(
        modulus=int_to_der_bytes(public.n),
        public_exponent=int_to_der_bytes(public.e),
        private_exponent=int_to_der_bytes(numbers.d),
        prime1=int_to_der_bytes(numbers.p),
        prime2=int_to_der_bytes(numbers.q),
        exponent1=int_to_der_bytes(numbers.dmp1),
        exponent2=int_to_der_bytes(numbers.dmq1),
        coefficient=int_to_der_bytes(numbers.iqmp),
    )
