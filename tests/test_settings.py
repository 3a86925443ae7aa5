from __future__ import annotations

import base64
import hashlib

import pytest

from otpautoread.core.settings import SMS_TIMEOUT_SECONDS, RuntimeSettings
from otpautoread.extraction import extract
from otpautoread.sms.app_hash import format_sms, generate_app_hash


@pytest.fixture(autouse=True)
def _clear_overrides(monkeypatch):
    monkeypatch.delenv("OTPAUTOREAD_EXPECTED_LENGTH", raising=False)
    monkeypatch.delenv("OTPAUTOREAD_SMS_TIMEOUT", raising=False)


def test_defaults():
    settings = RuntimeSettings()
    assert settings.extractor.expected_length == 4
    assert settings.retriever.timeout_seconds == SMS_TIMEOUT_SECONDS == 300
    assert settings.app.package_name is None


def test_from_file(tmp_path):
    path = tmp_path / "runtime.yml"
    path.write_text(
        "extractor:\n  expected_length: 6\n"
        "retriever:\n  timeout_seconds: 60\n"
        "app:\n  package_name: com.example.app\n  signature: cafe\n"
        "log_level: DEBUG\n"
    )
    settings = RuntimeSettings.from_file(path)
    assert settings.extractor.to_config().expected_length == 6
    assert settings.retriever.timeout_seconds == 60
    assert settings.app.signature == "cafe"
    assert settings.log_level == "DEBUG"


def test_empty_file_uses_defaults(tmp_path):
    path = tmp_path / "runtime.yml"
    path.write_text("")
    assert RuntimeSettings.from_file(path).extractor.expected_length == 4


@pytest.mark.parametrize("length", [3, 9])
def test_invalid_length_is_rejected(length):
    with pytest.raises(ValueError):
        RuntimeSettings.from_mapping({"extractor": {"expected_length": length}})


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("OTPAUTOREAD_EXPECTED_LENGTH", "5")
    monkeypatch.setenv("OTPAUTOREAD_SMS_TIMEOUT", "12.5")
    settings = RuntimeSettings.from_mapping({})
    assert settings.extractor.expected_length == 5
    assert settings.retriever.timeout_seconds == 12.5


@pytest.mark.parametrize("value", ["abc", "2"])
def test_bad_environment_override(monkeypatch, value):
    monkeypatch.setenv("OTPAUTOREAD_EXPECTED_LENGTH", value)
    with pytest.raises(ValueError):
        RuntimeSettings.from_mapping({})


def test_app_hash_shape():
    app_hash = generate_app_hash("com.example.otpautoread", "308201dd3082")
    assert len(app_hash) == 11
    assert app_hash == generate_app_hash("com.example.otpautoread", "308201dd3082")
    assert app_hash != generate_app_hash("com.example.other", "308201dd3082")

    digest = hashlib.sha256(b"com.example.otpautoread 308201dd3082").digest()
    assert app_hash == base64.b64encode(digest[:9]).decode()[:11]


def test_app_hash_requires_identity():
    with pytest.raises(ValueError):
        generate_app_hash("", "sig")


def test_conventional_message_extracts_code():
    app_hash = generate_app_hash("com.example.otpautoread", "308201dd3082")
    assert extract(format_sms("4821", app_hash)) == "4821"
