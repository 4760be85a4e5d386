# -*- coding: utf-8 -*-

"""
基于文件的证书存储 - 从PEM/DER/PKCS#12文件和certifi证书库读取证书
"""

import re
import shutil
import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Tuple, Union

import certifi
from asn1crypto import x509 as asn1_x509
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric.types import PrivateKeyTypes
from cryptography.hazmat.primitives.serialization import pkcs12
from cryptography.x509.oid import NameOID

from . import config
from .pem import iter_pem_blocks, pem_wrap

logger = logging.getLogger("cert-export.store")


@dataclass
class StoredCertificate:
    """存储中的一个证书，以及与之匹配的私钥 (如果有)"""
    certificate: x509.Certificate
    private_key: Optional[PrivateKeyTypes] = None
    source: str = ""

    @property
    def has_private_key(self) -> bool:
        return self.private_key is not None


def _public_key_der(public_key) -> bytes:
    return public_key.public_bytes(
        serialization.Encoding.DER,
        serialization.PublicFormat.SubjectPublicKeyInfo,
    )


def _attach_keys(stored: List[StoredCertificate], keys: List[PrivateKeyTypes]) -> None:
    """把私钥分配给公钥相同的证书"""
    for key in keys:
        key_der = _public_key_der(key.public_key())
        matched = False
        for entry in stored:
            if entry.has_private_key:
                continue
            if _public_key_der(entry.certificate.public_key()) == key_der:
                entry.private_key = key
                matched = True
        if not matched:
            logger.warning("找到一个私钥，但没有与之匹配的证书")


def _read_pem(text: str, password: Optional[bytes],
              source: str) -> Tuple[List[StoredCertificate], List[PrivateKeyTypes]]:
    stored = []
    keys = []
    for label, der_bytes in iter_pem_blocks(text):
        try:
            if label == config.PEM_LABEL_CERTIFICATE:
                stored.append(StoredCertificate(x509.load_der_x509_certificate(der_bytes), source=source))
            elif label == "ENCRYPTED PRIVATE KEY":
                keys.append(serialization.load_der_private_key(der_bytes, password=password))
            elif label.endswith("PRIVATE KEY"):
                keys.append(serialization.load_der_private_key(der_bytes, password=None))
            else:
                logger.debug(f"跳过PEM块: {label}")
        except (ValueError, TypeError) as e:
            logger.warning(f"跳过无法读取的PEM块 {label} ({source}): {e}")
    return stored, keys


def _read_file(path: Path, password: Optional[bytes]) -> Tuple[List[StoredCertificate], List[PrivateKeyTypes]]:
    source = path.as_posix()
    data = path.read_bytes()

    if path.suffix.lower() in config.PKCS12_SUFFIXES:
        key, cert, additional = pkcs12.load_key_and_certificates(data, password)
        stored = []
        if cert is not None:
            stored.append(StoredCertificate(cert, key, source))
        stored.extend(StoredCertificate(extra, source=source) for extra in additional)
        return stored, []

    if b"-----BEGIN" in data:
        return _read_pem(data.decode('utf-8', errors='replace'), password, source)

    # 其他情况按DER证书处理
    return [StoredCertificate(x509.load_der_x509_certificate(data), source=source)], []


def _encode_password(password: Optional[str]) -> Optional[bytes]:
    return password.encode('utf-8') if password else None


def load_certificates(path: Union[str, Path], password: Optional[str] = None) -> List[StoredCertificate]:
    """读取单个证书文件

    Args:
        path: PEM证书库、DER证书或PKCS#12文件
        password: PKCS#12或加密私钥的密码

    Returns:
        文件中的证书，私钥已经与对应证书关联
    """
    stored, keys = _read_file(Path(path), _encode_password(password))
    _attach_keys(stored, keys)
    logger.debug(f"从 {path} 读取了 {len(stored)} 个证书")
    return stored


def _iter_cert_files(paths: Iterable[Union[str, Path]]) -> Iterable[Path]:
    for path in map(Path, paths):
        if path.is_dir():
            for child in sorted(path.iterdir()):
                if child.is_file() and child.suffix.lower() in config.CERT_FILE_SUFFIXES:
                    yield child
        else:
            yield path


def load_store(paths: Iterable[Union[str, Path]], password: Optional[str] = None) -> List[StoredCertificate]:
    """读取多个文件或目录组成的证书存储，私钥可以与证书放在不同的文件中"""
    encoded_password = _encode_password(password)
    stored: List[StoredCertificate] = []
    keys: List[PrivateKeyTypes] = []

    for cert_file in _iter_cert_files(paths):
        try:
            file_stored, file_keys = _read_file(cert_file, encoded_password)
        except (ValueError, TypeError, OSError) as e:
            logger.warning(f"读取证书文件时出错 {cert_file}: {e}")
            continue
        stored.extend(file_stored)
        keys.extend(file_keys)

    _attach_keys(stored, keys)
    logger.info(f"读取了 {len(stored)} 个证书，其中 {sum(s.has_private_key for s in stored)} 个带有私钥")
    return stored


def load_certifi_store() -> List[StoredCertificate]:
    """从python-certifi库收集证书"""
    certifi_path = certifi.where()
    logger.debug(f"certifi证书库: {certifi_path}")
    return load_certificates(certifi_path)


def san_extension_bytes(cert: x509.Certificate) -> Optional[bytes]:
    """返回SAN扩展extnValue中的原始字节 (GeneralNames)，没有SAN扩展时返回None

    extnValue不会被解析，所以即使扩展内容损坏也能拿到原始字节。
    """
    der_bytes = cert.public_bytes(serialization.Encoding.DER)
    try:
        tbs = asn1_x509.Certificate.load(der_bytes)['tbs_certificate']
        return next(
            ext['extn_value'].contents
            for ext in tbs['extensions']
            if ext['extn_id'].dotted == config.SAN_OID
        )
    except StopIteration:
        return None
    except ValueError as e:
        logger.warning(f"无法读取证书扩展 ({config.SAN_OID}): {e}")
        return None


def check_openssl_available() -> bool:
    """检查系统中是否有openssl命令"""
    return shutil.which("openssl") is not None


def run_command(command: List[str], input_text: Optional[str] = None) -> str:
    """执行命令并返回输出

    Args:
        command: 要执行的命令列表
        input_text: 写入标准输入的文本

    Returns:
        命令的标准输出
    """
    cmd_str = ' '.join(command)
    logger.debug(f"执行命令: {cmd_str}")

    result = subprocess.run(
        command,
        input=input_text,
        capture_output=True,
        text=True,
        check=True
    )
    return result.stdout


def openssl_san_formatter(cert: x509.Certificate) -> Callable[[], Optional[str]]:
    """返回一个函数，用openssl生成SAN扩展的可读文本，每行一个名称"""

    def formatter() -> Optional[str]:
        if not check_openssl_available():
            logger.debug("找不到openssl命令，无法格式化SAN扩展")
            return None

        cert_pem = pem_wrap(config.PEM_LABEL_CERTIFICATE, cert.public_bytes(serialization.Encoding.DER))
        try:
            output = run_command(["openssl", "x509", "-noout", "-ext", "subjectAltName"], input_text=cert_pem)
        except (subprocess.CalledProcessError, OSError) as e:
            logger.debug(f"openssl格式化SAN扩展失败: {e}")
            return None

        names = []
        for line in output.splitlines():
            line = line.strip()
            # 去掉 "X509v3 Subject Alternative Name:" 标题行
            if not line or line.startswith("X509v3"):
                continue
            names.extend(part for part in re.split(r',\s*', line) if part)
        return "\n".join(names) or None

    return formatter


def common_name(cert: x509.Certificate) -> str:
    attributes = cert.subject.get_attributes_for_oid(NameOID.COMMON_NAME)
    if not attributes:
        return config.DEFAULT_COMMON_NAME
    return str(attributes[0].value)


def thumbprint(cert: x509.Certificate) -> str:
    """SHA-1指纹，大写十六进制"""
    return cert.fingerprint(hashes.SHA1()).hex().upper()
