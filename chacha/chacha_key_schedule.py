from .chacha_errors import InvalidKeyLength, InvalidNonceLength, InvalidRounds

# ========== Constants ==========
KEY_SIZE = 32
BLOCK_SIZE = 64
STATE_WORDS = BLOCK_SIZE // 4
ROUNDS_SUPPORTED = (8, 12, 20)

U32_MASK = 0xFFFFFFFF

SIGMA = b"expand 32-byte k"
CONSTANT_WORDS = (0x61707865, 0x3320646e, 0x79622d32, 0x6b206574)

# nonce size -> (first counter word, counter words, first nonce word)
# 8-byte nonce: 64-bit counter in words 12-13 (original ChaCha layout)
# 12-byte nonce: 32-bit counter in word 12 (RFC 7539 / RFC 8439 layout)
NONCE_LAYOUTS = {
    8: (12, 2, 14),
    12: (12, 1, 13),
}
DEFAULT_NONCE_SIZE = 8


def max_counter(nonce_size: int) -> int:
    """
    Indeks blok terbesar yang bisa ditampung counter untuk layout nonce ini.
    """
    _, counter_words, _ = nonce_layout(nonce_size)
    return (1 << (32 * counter_words)) - 1


def nonce_layout(nonce_size: int) -> tuple[int, int, int]:
    _check_int("nonce size", nonce_size)
    try:
        return NONCE_LAYOUTS[nonce_size]
    except KeyError:
        raise InvalidNonceLength(
            f"Unsupported nonce size {nonce_size}, expected one of {sorted(NONCE_LAYOUTS)}"
        ) from None


def _check_int(name: str, value) -> None:
    # pesan error tidak menyertakan nilainya
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{name} must be an int, not {type(value).__name__}")


def check_rounds(rounds: int) -> int:
    _check_int("rounds", rounds)
    if rounds not in ROUNDS_SUPPORTED:
        raise InvalidRounds(f"Rounds must be one of {ROUNDS_SUPPORTED}, got {rounds}")
    return rounds


# ========== Word packing ==========
def _le_words(b: bytes) -> list[int]:
    return [int.from_bytes(b[i:i+4], "little") for i in range(0, len(b), 4)]

def _words_le(ws: list[int]) -> bytes:
    return b"".join((w & U32_MASK).to_bytes(4, "little") for w in ws)

def _as_bytes(name: str, value) -> bytes:
    try:
        return bytes(memoryview(value))
    except TypeError:
        raise TypeError(f"{name} must be a bytes-like object, not {type(value).__name__}") from None


def load_key(key) -> list[int]:
    """
    Validasi key 256-bit dan kembalikan 8 word state little-endian.
    """
    key = _as_bytes("key", key)
    if len(key) != KEY_SIZE:
        raise InvalidKeyLength(f"Key must be {KEY_SIZE} bytes, got {len(key)}")
    return _le_words(key)


def load_nonce(nonce, nonce_size: int) -> list[int]:
    """
    Validasi panjang nonce sesuai konfigurasi dan kembalikan word state-nya.
    """
    nonce = _as_bytes("nonce", nonce)
    if len(nonce) != nonce_size:
        raise InvalidNonceLength(f"Nonce must be {nonce_size} bytes, got {len(nonce)}")
    return _le_words(nonce)


def initial_state(key_words: list[int], nonce_words: list[int], counter: int = 0) -> list[int]:
    """
    Susun state 4x4: konstanta, key, counter, nonce.
    """
    first_counter, counter_words, first_nonce = nonce_layout(len(nonce_words) * 4)
    s = list(CONSTANT_WORDS) + list(key_words) + [0] * 4
    set_counter(s, counter, counter_words)
    s[first_nonce:STATE_WORDS] = nonce_words
    return s


def set_counter(state: list[int], counter: int, counter_words: int) -> None:
    for i in range(counter_words):
        state[12 + i] = (counter >> (32 * i)) & U32_MASK


# ========== ChaCha core (pure Python) ==========
def _rotl32(x: int, n: int) -> int:
    return ((x << n) & U32_MASK) | (x >> (32 - n))

def quarter_round(s: list[int], a: int, b: int, c: int, d: int) -> None:
    s[a] = (s[a] + s[b]) & U32_MASK; s[d] ^= s[a]; s[d] = _rotl32(s[d], 16)
    s[c] = (s[c] + s[d]) & U32_MASK; s[b] ^= s[c]; s[b] = _rotl32(s[b], 12)
    s[a] = (s[a] + s[b]) & U32_MASK; s[d] ^= s[a]; s[d] = _rotl32(s[d], 8)
    s[c] = (s[c] + s[d]) & U32_MASK; s[b] ^= s[c]; s[b] = _rotl32(s[b], 7)


def permute(state: list[int], rounds: int = 20) -> list[int]:
    """
    Fungsi blok ChaCha atas state 16 word.

    Menjalankan rounds/2 double round (column round lalu diagonal round) pada
    salinan state, lalu menjumlahkan state input per word (feed-forward).
    List milik pemanggil tidak diubah.
    """
    check_rounds(rounds)
    if len(state) != STATE_WORDS:
        raise ValueError(f"State must have {STATE_WORDS} words, got {len(state)}")
    w = list(state)
    for _ in range(rounds // 2):
        # column round
        quarter_round(w, 0, 4, 8, 12); quarter_round(w, 1, 5, 9, 13)
        quarter_round(w, 2, 6, 10, 14); quarter_round(w, 3, 7, 11, 15)
        # diagonal round
        quarter_round(w, 0, 5, 10, 15); quarter_round(w, 1, 6, 11, 12)
        quarter_round(w, 2, 7, 8, 13); quarter_round(w, 3, 4, 9, 14)
    return [(w[i] + state[i]) & U32_MASK for i in range(STATE_WORDS)]


def serialize_state(words: list[int]) -> bytes:
    return _words_le(words)  # 64 bytes


def chacha_block(state: list[int], rounds: int = 20) -> bytes:
    """
    Satu blok keystream 64 byte untuk state tersebut.
    """
    return serialize_state(permute(state, rounds))
