import os
import stat

from cryptography.fernet import Fernet

from baraya.services.token_store import EncryptedFileTokenStore, InMemoryTokenStore


def test_round_trip_with_generated_key(tmp_path):
    store = EncryptedFileTokenStore("com.barayaapp.auth", str(tmp_path))

    assert store.get_token() is None
    assert store.has_token() is False
    assert store.set_token("abc.def.ghi") is True
    assert store.get_token() == "abc.def.ghi"
    assert store.has_token() is True

    key_path = tmp_path / "com.barayaapp.auth.key"
    assert key_path.exists()
    assert stat.S_IMODE(os.stat(key_path).st_mode) == 0o600
    assert b"abc.def.ghi" not in (tmp_path / "com.barayaapp.auth.token").read_bytes()


def test_overwrite_and_remove(tmp_path):
    store = EncryptedFileTokenStore("svc", str(tmp_path))
    store.set_token("first")
    store.set_token("second")
    assert store.get_token() == "second"

    assert store.remove_token() is True
    assert store.get_token() is None
    # Removing twice is fine
    assert store.remove_token() is True


def test_token_survives_new_instance(tmp_path):
    EncryptedFileTokenStore("svc", str(tmp_path)).set_token("persisted")
    assert EncryptedFileTokenStore("svc", str(tmp_path)).get_token() == "persisted"


def test_explicit_key(tmp_path):
    key = Fernet.generate_key().decode()
    store = EncryptedFileTokenStore("svc", str(tmp_path), key=key)
    store.set_token("t")

    assert not (tmp_path / "svc.key").exists()
    assert EncryptedFileTokenStore("svc", str(tmp_path), key=key).get_token() == "t"


def test_wrong_key_reads_as_no_token(tmp_path):
    EncryptedFileTokenStore("svc", str(tmp_path), key=Fernet.generate_key().decode()).set_token("t")
    other = EncryptedFileTokenStore("svc", str(tmp_path), key=Fernet.generate_key().decode())

    assert other.get_token() is None


def test_invalid_key_is_reported_not_raised(tmp_path):
    store = EncryptedFileTokenStore("svc", str(tmp_path), key="not-a-fernet-key")

    assert store.set_token("t") is False
    assert store.get_token() is None


def test_in_memory_store():
    store = InMemoryTokenStore("seed")
    assert store.get_token() == "seed"
    store.set_token("next")
    assert store.writes == 1
    store.remove_token()
    assert store.has_token() is False
