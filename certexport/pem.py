# -*- coding: utf-8 -*-

"""
PEM格式的包装与拆分
"""

import re
import base64
import binascii
import logging
from typing import Iterator, List, Optional, Tuple

from . import config

logger = logging.getLogger("cert-export.pem")

BEGIN_RE = re.compile(r'^-----BEGIN ([A-Z0-9 ]+)-----$')


def pem_wrap(label: str, der_bytes: bytes) -> str:
    """将DER字节转换为PEM格式

    Args:
        label: CERTIFICATE、PRIVATE KEY 或 RSA PRIVATE KEY
        der_bytes: 任意字节，可以为空

    Returns:
        BEGIN/END包围、按64字符换行的base64文本，以换行结尾
    """
    b64_data = base64.b64encode(bytes(der_bytes)).decode('ascii')

    # 按64字符宽度格式化
    formatted_data = [f"-----BEGIN {label}-----"]
    for i in range(0, len(b64_data), config.PEM_LINE_WIDTH):
        formatted_data.append(b64_data[i:i + config.PEM_LINE_WIDTH])
    formatted_data.append(f"-----END {label}-----")

    return "\n".join(formatted_data) + "\n"


def iter_pem_blocks(text: str) -> Iterator[Tuple[str, bytes]]:
    """拆分PEM文本中的所有块，返回 (标签, DER字节)

    块外的行会被忽略；无法base64解码的块 (例如加密的旧格式私钥) 会被跳过。
    """
    label: Optional[str] = None
    body: List[str] = []

    for line in text.splitlines():
        stripped = line.strip()

        if label is None:
            m_begin = BEGIN_RE.match(stripped)
            if m_begin:
                label = m_begin.group(1)
                body = []
            continue

        if stripped == f"-----END {label}-----":
            try:
                der_bytes = base64.b64decode("".join(body), validate=True)
            except (binascii.Error, ValueError) as e:
                logger.warning(f"跳过无法解码的PEM块 {label}: {e}")
            else:
                yield label, der_bytes
            label = None
        elif stripped:
            body.append(stripped)

    if label is not None:
        logger.warning(f"PEM块 {label} 缺少END行")
