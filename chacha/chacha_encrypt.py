import numpy as np

from .chacha_engine import new


def generate_keystream(key: bytes, nonce: bytes, length: int, rounds: int = 20, counter: int = 0) -> bytes:
    """
    Menghasilkan keystream mentah sepanjang 'length' byte mulai dari blok 'counter'.
    - key: 32 byte
    - nonce: 8 byte (counter 64-bit) atau 12 byte (counter 32-bit)
    """
    engine = new(key, nonce, rounds)
    engine.seek(counter)
    return engine.keystream(length)


def encrypt_bytes(key: bytes, nonce: bytes, plaintext: bytes, rounds: int = 20) -> bytes:
    """
    ChaCha stream cipher (XOR dengan keystream) mulai dari offset 0.
    """
    return new(key, nonce, rounds).crypt(plaintext)


def crypt_offset(key: bytes, nonce: bytes, offset: int, data: bytes, rounds: int = 20) -> bytes:
    """
    Enkripsi/dekripsi potongan pesan yang dimulai pada byte 'offset'.
    Potongan yang diproses worker terpisah, jika digabung, sama dengan
    ciphertext hasil satu kali proses seluruh pesan.
    """
    engine = new(key, nonce, rounds)
    engine.seek_offset(offset)
    return engine.crypt(data)


def encrypt_array(arr: np.ndarray, key: bytes, nonce: bytes, rounds: int = 20) -> np.ndarray:
    """
    Enkripsi array uint8 berbentuk apa pun, mengembalikan array baru dengan shape yang sama.
    """
    if arr.dtype != np.uint8:
        raise ValueError("Array must be uint8.")
    out = np.ascontiguousarray(arr).copy()
    new(key, nonce, rounds).combine(out)
    return out


def encrypt_image_to_image(img: np.ndarray, key: bytes, nonce: bytes, rounds: int = 20) -> np.ndarray:
    """
    Enkripsi gambar uint8 dan mengembalikan array uint8 dengan shape yang sama.
    """
    if img.dtype != np.uint8:
        raise ValueError("Image must be uint8.")
    return encrypt_array(img, key, nonce, rounds)
