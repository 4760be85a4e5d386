# -*- coding: utf-8 -*-

"""
测试用的密钥和证书
"""

import pytest
from cryptography.hazmat.primitives.asymmetric import ec, rsa

from cert_builders import SERVER_SAN, build_certificate, cert_pem, key_pem


@pytest.fixture(scope="session")
def rsa_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def ec_key():
    return ec.generate_private_key(ec.SECP256R1())


@pytest.fixture(scope="session")
def server_cert(rsa_key):
    return build_certificate(rsa_key, "localhost", SERVER_SAN)


@pytest.fixture(scope="session")
def plain_cert(ec_key):
    return build_certificate(ec_key, "internal-ca")


@pytest.fixture
def cert_dir(tmp_path, rsa_key, server_cert, ec_key, plain_cert):
    """证书目录: 服务器证书和私钥分别存放，另一个证书与私钥放在同一个文件中"""
    input_dir = tmp_path / "input"
    input_dir.mkdir()
    (input_dir / "server.crt").write_bytes(cert_pem(server_cert))
    (input_dir / "server.key").write_bytes(key_pem(rsa_key))
    (input_dir / "internal.pem").write_bytes(cert_pem(plain_cert) + key_pem(ec_key))
    return input_dir
