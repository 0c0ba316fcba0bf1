import numpy as np

from .chacha_encrypt import encrypt_array, encrypt_bytes


def decrypt_bytes(key: bytes, nonce: bytes, ciphertext: bytes, rounds: int = 20) -> bytes:
    """
    Dekripsi ChaCha (identik dengan enkripsi): XOR dengan keystream.
    """
    return encrypt_bytes(key, nonce, ciphertext, rounds)


def decrypt_image_to_image(cipher_img: np.ndarray, key: bytes, nonce: bytes, rounds: int = 20) -> np.ndarray:
    if cipher_img.dtype != np.uint8:
        raise ValueError("Image must be uint8.")
    return encrypt_array(cipher_img, key, nonce, rounds)
