from guardescrow.addressing import derive_custody_address, verify_custody_address


def test_derivation_is_deterministic():
    first = derive_custody_address("buyer", "seller", "ns")
    second = derive_custody_address("buyer", "seller", "ns")
    assert first == second
    address, bump = first
    assert len(address) == 64
    assert 0 <= bump <= 255


def test_derivation_is_unique_per_pair_and_namespace():
    base, _ = derive_custody_address("buyer", "seller", "ns")
    assert derive_custody_address("seller", "buyer", "ns")[0] != base
    assert derive_custody_address("buyer", "other", "ns")[0] != base
    assert derive_custody_address("buyer", "seller", "other-ns")[0] != base


def test_verify_custody_address():
    address, bump = derive_custody_address("buyer", "seller", "ns")
    assert verify_custody_address(address, "buyer", "seller", bump, "ns")
    assert not verify_custody_address(address, "buyer", "seller", (bump - 1) % 256, "ns")
    assert not verify_custody_address(address, "buyer", "mallory", bump, "ns")
    assert not verify_custody_address(address, "buyer", "seller", 300, "ns")
