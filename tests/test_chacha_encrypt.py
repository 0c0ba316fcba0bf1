import numpy as np
import pytest

from chacha.chacha_engine import new
from chacha.chacha_encrypt import (
    crypt_offset,
    encrypt_array,
    encrypt_bytes,
    encrypt_image_to_image,
    generate_keystream,
)
from chacha.chacha_decrypt import decrypt_bytes, decrypt_image_to_image

KEY = bytes(range(100, 132))
NONCE = bytes(range(12))
PLAINTEXT = b"Ladies and Gentlemen of the class of '99: If I could offer you only one tip for the future, sunscreen would be it."


def test_generate_keystream_from_counter():
    ks = generate_keystream(KEY, NONCE, 100, counter=1)
    engine = new(KEY, NONCE)
    assert ks[:64] == engine.generate_block(1)
    assert ks[64:] == engine.generate_block(2)[:36]


def test_encrypt_decrypt_bytes():
    ct = encrypt_bytes(KEY, NONCE, PLAINTEXT)
    assert len(ct) == len(PLAINTEXT)
    assert ct != PLAINTEXT
    assert decrypt_bytes(KEY, NONCE, ct) == PLAINTEXT


@pytest.mark.parametrize("rounds", [8, 12, 20])
def test_rounds_change_ciphertext(rounds):
    ct = encrypt_bytes(KEY, NONCE, PLAINTEXT, rounds)
    assert decrypt_bytes(KEY, NONCE, ct, rounds) == PLAINTEXT
    other = 8 if rounds != 8 else 20
    assert decrypt_bytes(KEY, NONCE, ct, other) != PLAINTEXT


def test_crypt_offset_slices_join():
    whole = encrypt_bytes(KEY, NONCE, PLAINTEXT)
    cuts = [0, 5, 64, 70, len(PLAINTEXT)]
    pieces = [
        crypt_offset(KEY, NONCE, start, PLAINTEXT[start:end])
        for start, end in zip(cuts, cuts[1:])
    ]
    assert b"".join(pieces) == whole


def test_encrypt_array_keeps_shape_and_input():
    arr = np.arange(2 * 3 * 50, dtype=np.uint16).astype(np.uint8).reshape(2, 3, 50)
    original = arr.copy()
    ct = encrypt_array(arr, KEY, NONCE)
    assert ct.shape == arr.shape
    assert ct.dtype == np.uint8
    assert np.array_equal(arr, original)
    assert ct.tobytes() == encrypt_bytes(KEY, NONCE, arr.tobytes())


def test_encrypt_array_non_contiguous():
    arr = np.arange(256, dtype=np.uint8).reshape(16, 16).T
    ct = encrypt_array(arr, KEY, NONCE)
    assert ct.tobytes() == encrypt_bytes(KEY, NONCE, np.ascontiguousarray(arr).tobytes())


def test_image_round_trip():
    rng = np.random.default_rng(7)
    img = rng.integers(0, 256, size=(12, 9, 3), dtype=np.uint8)
    cipher_img = encrypt_image_to_image(img, KEY, NONCE)
    assert cipher_img.shape == img.shape
    assert not np.array_equal(cipher_img, img)
    assert np.array_equal(decrypt_image_to_image(cipher_img, KEY, NONCE), img)


def test_image_must_be_uint8():
    img = np.zeros((4, 4), dtype=np.float32)
    with pytest.raises(ValueError):
        encrypt_image_to_image(img, KEY, NONCE)
    with pytest.raises(ValueError):
        decrypt_image_to_image(img, KEY, NONCE)
