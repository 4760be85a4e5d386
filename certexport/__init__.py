# -*- coding: utf-8 -*-

"""
证书导出工具的编解码核心: SAN提取、PKCS#1私钥编码和PEM包装
"""

from .errors import (
    CertExportError,
    DecodingError,
    EncodingError,
    IncompleteKeyParameters,
    MalformedInput,
    UnrecognizedEncoding,
    UnsupportedLength,
)
from .pem import iter_pem_blocks, pem_wrap
from .pkcs1 import RsaPrivateKeyParams, encode_pkcs1_rsa_private_key, rsa_params_from_numbers
from .san import (
    GeneralName,
    GeneralNameKind,
    extract_san_entries,
    parse_general_names,
    scan_general_names,
)

__version__ = "1.0.0"
