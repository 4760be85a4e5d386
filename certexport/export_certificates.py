#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
证书导出工具 - 按主题或主题备用名称(SAN)搜索证书，并导出为PEM文件

对每个匹配的证书生成:
- {CommonName}_{timestamp}_{index}.crt  PEM格式的证书
- {CommonName}_{timestamp}_{index}.key  PEM格式的私钥 (如果有)
"""

import os
import sys
import logging
import argparse
import datetime
from pathlib import Path
from typing import List, Optional

from cryptography import x509
from cryptography.hazmat.primitives import serialization

from . import config
from .keys import export_private_key_pem
from .pem import pem_wrap
from .san import GeneralName, extract_san_entries
from .store import (
    StoredCertificate,
    common_name,
    load_certifi_store,
    load_store,
    openssl_san_formatter,
    san_extension_bytes,
    thumbprint,
)

# 配置日志
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)]
)
logger = logging.getLogger("cert-export")


def get_san_entries(stored: StoredCertificate, strategy: str = config.DEFAULT_SAN_STRATEGY) -> List[GeneralName]:
    """获取证书的SAN条目，没有SAN扩展时返回空列表"""
    raw_data = san_extension_bytes(stored.certificate)
    if raw_data is None:
        return []
    formatter = openssl_san_formatter(stored.certificate)
    return list(extract_san_entries(raw_data, formatter=formatter, strategy=strategy))


def certificate_matches(stored: StoredCertificate, search_term: str,
                        search_subject: bool = True, search_san: bool = True,
                        strategy: str = config.DEFAULT_SAN_STRATEGY) -> bool:
    """检查证书主题或SAN中是否包含搜索词 (不区分大小写)"""
    term = search_term.lower()

    if search_subject and term in stored.certificate.subject.rfc4514_string().lower():
        return True

    if search_san:
        return any(term in str(entry).lower() for entry in get_san_entries(stored, strategy))

    return False


def sanitize_filename(name: str) -> str:
    """清理名称，移除文件名中的非法字符"""
    safe_name = "".join(c if c.isalnum() or c in ".-" else "_" for c in name)
    # 截断过长的名称
    return safe_name[:config.MAX_FILENAME_LENGTH] or config.DEFAULT_COMMON_NAME


def build_base_name(cert: x509.Certificate, timestamp: str, index: int) -> str:
    return f"{sanitize_filename(common_name(cert))}_{timestamp}_{index}"


def write_private_file(path: Path, text: str) -> None:
    """写入只有所有者可读写的文件，文件从创建起就是0600"""
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, 'w', encoding='utf-8') as f:
        # 已存在的文件不受os.open的mode影响
        os.chmod(path, 0o600)
        f.write(text)


def export_certificate(stored: StoredCertificate, index: int, output_dir: Path, timestamp: str,
                       key_format: str = config.DEFAULT_KEY_FORMAT,
                       normalize_sign: bool = config.NORMALIZE_INTEGER_SIGN,
                       strategy: str = config.DEFAULT_SAN_STRATEGY) -> List[Path]:
    """导出一个证书及其私钥，返回写入的文件"""
    cert = stored.certificate

    logger.info(f"证书 {index}:")
    logger.info(f"  主题: {cert.subject.rfc4514_string()}")
    logger.info(f"  颁发者: {cert.issuer.rfc4514_string()}")
    logger.info(f"  有效期自: {cert.not_valid_before_utc}")
    logger.info(f"  有效期至: {cert.not_valid_after_utc}")
    logger.info(f"  指纹: {thumbprint(cert)}")
    logger.info(f"  带有私钥: {stored.has_private_key}")

    san_entries = get_san_entries(stored, strategy)
    if san_entries:
        logger.info("  主题备用名称:")
        for entry in san_entries:
            logger.info(f"    - {entry}")

    base_name = build_base_name(cert, timestamp, index)
    written = []

    cert_path = output_dir / f"{base_name}.crt"
    cert_pem = pem_wrap(config.PEM_LABEL_CERTIFICATE, cert.public_bytes(serialization.Encoding.DER))
    cert_path.write_text(cert_pem, encoding='utf-8')
    written.append(cert_path)
    logger.info(f"  ✓ 证书已导出到: {cert_path}")

    if not stored.has_private_key:
        logger.info("  ⚠ 没有可用的私钥")
        return written

    label, key_pem = export_private_key_pem(stored.private_key, key_format, normalize_sign)
    key_path = output_dir / f"{base_name}.key"
    write_private_file(key_path, key_pem)
    written.append(key_path)
    logger.info(f"  ✓ 私钥 ({label}) 已导出到: {key_path}")
    return written


def export_store(store_name: str, certificates: List[StoredCertificate], args: argparse.Namespace,
                 output_dir: Path, timestamp: str) -> int:
    """在一个存储中搜索并导出证书，返回失败的数量"""
    logger.info(f"--- 在 {store_name} 存储中搜索 ---")

    search_subject = not args.san_only
    search_san = not args.subject_only
    matching = [
        stored for stored in certificates
        if certificate_matches(stored, args.search, search_subject, search_san, args.san_parser)
    ]

    if not matching:
        logger.info(f"在 {store_name} 存储中没有找到匹配 '{args.search}' 的证书")
        return 0

    logger.info(f"在 {store_name} 存储中找到 {len(matching)} 个匹配的证书")

    failures = 0
    for index, stored in enumerate(matching, start=1):
        try:
            export_certificate(stored, index, output_dir, timestamp,
                               key_format=args.key_format,
                               normalize_sign=args.normalize_integers,
                               strategy=args.san_parser)
        except Exception as e:
            logger.error(f"导出证书时出错 {stored.source}: {e}")
            failures += 1
    return failures


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="按主题或SAN搜索证书并导出为PEM文件")
    parser.add_argument("-o", "--output", type=str, default=config.DEFAULT_OUTPUT_DIR, help="输出目录")
    parser.add_argument("-s", "--search", type=str, default=config.DEFAULT_SEARCH_TERM, help="搜索词 (不区分大小写)")

    scope = parser.add_mutually_exclusive_group()
    scope.add_argument("--subject-only", action="store_true", help="只在证书主题中搜索")
    scope.add_argument("--san-only", action="store_true", help="只在主题备用名称中搜索")

    parser.add_argument("-i", "--input", action="append", default=[],
                        help="证书文件或目录，可以多次指定")
    parser.add_argument("--certifi", action="store_true", help="同时搜索certifi根证书库")
    parser.add_argument("--password", type=str, default=None, help="PKCS#12文件或加密私钥的密码")
    parser.add_argument("--san-parser", choices=config.SAN_STRATEGIES, default=config.DEFAULT_SAN_STRATEGY,
                        help="SAN解析方式")
    parser.add_argument("--key-format", choices=config.KEY_FORMATS, default=config.DEFAULT_KEY_FORMAT,
                        help="私钥导出格式")
    parser.add_argument("--normalize-integers", action="store_true", default=config.NORMALIZE_INTEGER_SIGN,
                        help="手动编码PKCS#1时为最高位为1的整数补0x00")
    parser.add_argument("--noverbose", action="store_true", help="减少输出详细信息")
    parser.add_argument("-v", "--verbose", action="store_true", help="显示详细输出")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """主函数"""
    args = build_parser().parse_args(argv)

    # 设置是否详细输出
    if args.verbose:
        logger.setLevel(logging.DEBUG)
    elif args.noverbose:
        logger.setLevel(logging.WARNING)
    else:
        logger.setLevel(logging.INFO)

    output_dir = Path(args.output)
    output_dir.mkdir(exist_ok=True, parents=True)

    timestamp = datetime.datetime.now().strftime(config.TIMESTAMP_FORMAT)
    logger.info(f"搜索包含 '{args.search}' 的证书")
    logger.info(f"在主题中搜索: {not args.san_only}")
    logger.info(f"在SAN中搜索: {not args.subject_only}")
    logger.info(f"导出证书到: {output_dir}")
    logger.info(f"时间戳: {timestamp}")

    stores = []
    if args.input:
        stores.append((config.PERSONAL_STORE, load_store(args.input, args.password)))
    if args.certifi or not args.input:
        stores.append((config.ROOT_STORE, load_certifi_store()))

    failures = 0
    for store_name, certificates in stores:
        failures += export_store(store_name, certificates, args, output_dir, timestamp)

    if failures:
        logger.error(f"有 {failures} 个证书导出失败")
        return 1

    logger.info("证书导出完成")
    return 0


if __name__ == "__main__":
    sys.exit(main())
