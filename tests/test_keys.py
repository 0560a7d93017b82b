from guardescrow.keys import create_and_save_keypair, load_keypair_from_file


def test_plain_keypair_file(tmp_path):
    path = tmp_path / "buyer.json"
    keypair = create_and_save_keypair(str(path))
    loaded = load_keypair_from_file(str(path))
    assert loaded.public_key == keypair.public_key
    assert len(keypair.public_key) == 64


def test_encrypted_keypair_file(tmp_path):
    path = tmp_path / "keys" / "seller.enc"
    keypair = create_and_save_keypair(str(path), encryption_key="passphrase")
    assert keypair.secret_hex() not in path.read_bytes().decode("utf-8", errors="ignore")
    loaded = load_keypair_from_file(str(path), encryption_key="passphrase")
    assert loaded.public_key == keypair.public_key
