# -*- coding: utf-8 -*-

"""
私钥导出 - 依次尝试PKCS#8、PKCS#1，最后手动编码PKCS#1
"""

import logging
from typing import Callable, Dict, Tuple

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.asymmetric.types import PrivateKeyTypes

from . import config
from .pem import pem_wrap
from .pkcs1 import encode_pkcs1_rsa_private_key, rsa_params_from_numbers

logger = logging.getLogger("cert-export.keys")


def _export_pkcs8(key: PrivateKeyTypes, normalize_sign: bool) -> Tuple[str, bytes]:
    der_bytes = key.private_bytes(
        serialization.Encoding.DER,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    )
    return config.PEM_LABEL_PRIVATE_KEY, der_bytes


def _export_pkcs1(key: rsa.RSAPrivateKey, normalize_sign: bool) -> Tuple[str, bytes]:
    der_bytes = key.private_bytes(
        serialization.Encoding.DER,
        serialization.PrivateFormat.TraditionalOpenSSL,
        serialization.NoEncryption(),
    )
    return config.PEM_LABEL_RSA_PRIVATE_KEY, der_bytes


def _export_manual(key: rsa.RSAPrivateKey, normalize_sign: bool) -> Tuple[str, bytes]:
    params = rsa_params_from_numbers(key.private_numbers())
    return config.PEM_LABEL_RSA_PRIVATE_KEY, encode_pkcs1_rsa_private_key(params, normalize_sign)


EXPORTERS: Dict[str, Callable] = {
    "pkcs8": _export_pkcs8,
    "pkcs1": _export_pkcs1,
    "manual": _export_manual,
}


def export_private_key_pem(key: PrivateKeyTypes,
                           key_format: str = config.DEFAULT_KEY_FORMAT,
                           normalize_sign: bool = config.NORMALIZE_INTEGER_SIGN) -> Tuple[str, str]:
    """导出私钥为PEM文本

    Args:
        key: cryptography私钥对象
        key_format: auto、pkcs8、pkcs1 或 manual
        normalize_sign: 手动编码时是否补齐INTEGER的符号字节

    Returns:
        (PEM标签, PEM文本)

    Raises:
        EncodingError: 手动编码失败
    """
    if key_format not in config.KEY_FORMATS:
        raise ValueError(f"unknown key format: {key_format}")

    if not isinstance(key, rsa.RSAPrivateKey):
        # EC等其他算法只支持PKCS#8
        if key_format not in ("auto", "pkcs8"):
            logger.debug(f"{type(key).__name__} 不支持 {key_format}，改用PKCS#8")
        label, der_bytes = EXPORTERS["pkcs8"](key, normalize_sign)
        return label, pem_wrap(label, der_bytes)

    if key_format != "auto":
        label, der_bytes = EXPORTERS[key_format](key, normalize_sign)
        return label, pem_wrap(label, der_bytes)

    for fmt in ("pkcs8", "pkcs1"):
        try:
            label, der_bytes = EXPORTERS[fmt](key, normalize_sign)
        except (ValueError, TypeError, UnsupportedAlgorithm) as e:
            logger.debug(f"{fmt} 导出失败，尝试下一种格式: {e}")
            continue
        return label, pem_wrap(label, der_bytes)

    logger.info("平台导出不可用，手动编码PKCS#1私钥")
    label, der_bytes = EXPORTERS["manual"](key, normalize_sign)
    return label, pem_wrap(label, der_bytes)
