# -*- coding: utf-8 -*-

import subprocess

from cryptography import x509
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.serialization import pkcs12
from cryptography.x509.oid import ExtensionOID

from certexport import config, store

from cert_builders import SERVER_SAN, build_certificate, cert_pem, key_pem


def test_load_pem_with_key(tmp_path, rsa_key, server_cert):
    path = tmp_path / "server.pem"
    path.write_bytes(key_pem(rsa_key) + cert_pem(server_cert))

    stored = store.load_certificates(path)
    assert len(stored) == 1
    assert stored[0].certificate == server_cert
    assert stored[0].has_private_key
    assert stored[0].source == path.as_posix()


def test_load_der(tmp_path, server_cert):
    path = tmp_path / "server.cer"
    path.write_bytes(server_cert.public_bytes(serialization.Encoding.DER))

    stored = store.load_certificates(path)
    assert [s.certificate for s in stored] == [server_cert]
    assert not stored[0].has_private_key


def test_load_pkcs12(tmp_path, rsa_key, server_cert, plain_cert):
    path = tmp_path / "server.pfx"
    path.write_bytes(pkcs12.serialize_key_and_certificates(
        b"server", rsa_key, server_cert, [plain_cert],
        serialization.BestAvailableEncryption(b"secret"),
    ))

    stored = store.load_certificates(path, password="secret")
    assert [s.certificate for s in stored] == [server_cert, plain_cert]
    assert [s.has_private_key for s in stored] == [True, False]


def test_load_store_pairs_keys_across_files(cert_dir, server_cert, plain_cert):
    (cert_dir / "broken.crt").write_bytes(b"not a certificate")
    (cert_dir / "notes.txt").write_text("ignored")

    stored = store.load_store([cert_dir])
    by_cert = {s.certificate: s for s in stored}
    assert set(by_cert) == {server_cert, plain_cert}
    assert by_cert[server_cert].has_private_key
    assert by_cert[plain_cert].has_private_key


def test_unmatched_key_is_not_attached(tmp_path, ec_key, server_cert):
    (tmp_path / "server.crt").write_bytes(cert_pem(server_cert))
    (tmp_path / "other.key").write_bytes(key_pem(ec_key))

    stored = store.load_store([tmp_path])
    assert len(stored) == 1
    assert not stored[0].has_private_key


def test_load_certifi_store():
    stored = store.load_certifi_store()
    assert stored
    assert not any(s.has_private_key for s in stored)


def test_san_extension_bytes(server_cert):
    expected = server_cert.extensions.get_extension_for_class(x509.SubjectAlternativeName).value.public_bytes()
    assert store.san_extension_bytes(server_cert) == expected


def test_san_extension_bytes_critical(rsa_key):
    cert = build_certificate(rsa_key, "critical.test", SERVER_SAN, critical_san=True)
    expected = x509.SubjectAlternativeName(SERVER_SAN).public_bytes()
    assert store.san_extension_bytes(cert) == expected


def test_san_extension_bytes_absent(plain_cert):
    assert store.san_extension_bytes(plain_cert) is None


def test_san_extension_bytes_not_general_names(rsa_key):
    # extnValue不是GeneralNames SEQUENCE时仍然返回原始字节
    raw = b"\x82\x03abc\x87\x05\x00\x82\x03def"
    extension = x509.UnrecognizedExtension(ExtensionOID.SUBJECT_ALTERNATIVE_NAME, raw)
    cert = build_certificate(rsa_key, "raw.test", extra_extensions=[extension])
    assert store.san_extension_bytes(cert) == raw


def test_common_name(rsa_key, server_cert):
    assert store.common_name(server_cert) == "localhost"
    assert store.common_name(build_certificate(rsa_key)) == config.DEFAULT_COMMON_NAME


def test_thumbprint(server_cert):
    value = store.thumbprint(server_cert)
    assert len(value) == 40
    assert value == value.upper()


def test_openssl_formatter_without_openssl(server_cert, monkeypatch):
    monkeypatch.setattr(store, "check_openssl_available", lambda: False)
    assert store.openssl_san_formatter(server_cert)() is None


def test_openssl_formatter_splits_names(server_cert, monkeypatch):
    output = "X509v3 Subject Alternative Name: \n    DNS:localhost, IP Address:127.0.0.1\n"
    calls = []

    def fake_run(command, input_text=None):
        calls.append((command, input_text))
        return output

    monkeypatch.setattr(store, "check_openssl_available", lambda: True)
    monkeypatch.setattr(store, "run_command", fake_run)

    assert store.openssl_san_formatter(server_cert)() == "DNS:localhost\nIP Address:127.0.0.1"
    assert calls[0][0][:2] == ["openssl", "x509"]
    assert calls[0][1].startswith("-----BEGIN CERTIFICATE-----")


def test_openssl_formatter_command_failure(server_cert, monkeypatch):
    def failing_run(command, input_text=None):
        raise subprocess.CalledProcessError(1, command)

    monkeypatch.setattr(store, "check_openssl_available", lambda: True)
    monkeypatch.setattr(store, "run_command", failing_run)
    assert store.openssl_san_formatter(server_cert)() is None
