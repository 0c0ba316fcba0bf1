import enum

import numpy as np

from .chacha_errors import CounterOverflow, NotInitialized
from .chacha_key_schedule import (
    BLOCK_SIZE,
    DEFAULT_NONCE_SIZE,
    chacha_block,
    check_rounds,
    initial_state,
    load_key,
    load_nonce,
    max_counter,
    nonce_layout,
    set_counter,
)


class KeystreamOperation(enum.Enum):
    ENCRYPT = "encrypt"
    DECRYPT = "decrypt"


class ChaChaEngine:
    """
    Generator keystream ChaCha yang bisa di-seek (8, 12 atau 20 round).

    Panjang nonce menentukan layout state: nonce 8 byte memakai counter blok
    64-bit, nonce 12 byte memakai counter 32-bit. Counter tidak pernah
    wrap; melewati ``max_counter`` memunculkan CounterOverflow.

    Pasangan (key, nonce) tidak boleh dipakai untuk dua pesan berbeda. Engine
    tidak bisa mendeteksinya, jadi pemanggil wajib memakai nonce baru per
    pesan dan berpindah lewat ``resynchronize``.

    Tidak thread-safe. Pakai satu engine per worker dan bagi stream dengan
    ``seek`` / ``seek_offset``.
    """

    def __init__(self, rounds: int = 20, nonce_size: int = DEFAULT_NONCE_SIZE,
                 key: bytes | None = None, nonce: bytes | None = None):
        self.rounds = check_rounds(rounds)
        self.nonce_size = nonce_size
        _, self._counter_words, self._nonce_start = nonce_layout(nonce_size)
        self.max_counter = max_counter(nonce_size)

        self._state: list[int] | None = None
        self._counter = 0
        self._stream = b""
        self._index = BLOCK_SIZE

        if key is not None or nonce is not None:
            if key is None or nonce is None:
                raise TypeError("key and nonce must be given together")
            self.initialize(key, nonce)

    def __repr__(self) -> str:
        return (f"{type(self).__name__}(rounds={self.rounds}, nonce_size={self.nonce_size}, "
                f"initialized={self.initialized}, position={self.position})")

    # ========== State ==========
    @property
    def initialized(self) -> bool:
        return self._state is not None

    @property
    def counter(self) -> int:
        """Indeks blok berikutnya yang akan dibangkitkan."""
        return self._counter

    @property
    def position(self) -> int:
        """Offset byte keystream berikutnya."""
        return self._counter * BLOCK_SIZE - (BLOCK_SIZE - self._index)

    @property
    def state(self) -> list[int]:
        return list(self._require_state())

    def initialize(self, key: bytes, nonce: bytes) -> "ChaChaEngine":
        key_words = load_key(key)
        nonce_words = load_nonce(nonce, self.nonce_size)
        self._state = initial_state(key_words, nonce_words)
        self._reset(0)
        return self

    def resynchronize(self, nonce: bytes) -> None:
        """
        Ganti nonce dan kembali ke blok 0, key yang sudah dimuat tetap dipakai.
        """
        state = self._require_state()
        state[self._nonce_start:] = load_nonce(nonce, self.nonce_size)
        self._reset(0)

    def seek(self, block_index: int) -> None:
        self._require_state()
        self._check_index(block_index)
        self._reset(block_index)

    def seek_offset(self, offset: int) -> None:
        """
        Seek ke posisi byte; blok yang memuat byte itu langsung dibangkitkan.
        """
        if offset < 0:
            raise CounterOverflow(f"Offset must not be negative, got {offset}")
        block, index = divmod(offset, BLOCK_SIZE)
        self.seek(block)
        if index:
            self._stream = self._block_at(block)
            self._index = index
            self._set_counter(block + 1)

    # ========== Keystream ==========
    def generate_block(self, counter: int | None = None) -> bytes:
        """
        Menghasilkan satu blok keystream 64 byte.

        Dengan ``counter`` eksplisit, blok pada indeks itu dikembalikan dan
        engine tidak berubah. Tanpa ``counter``, blok pada counter saat ini
        dikembalikan lalu counter maju satu; sisa byte dari blok yang baru
        terpakai sebagian dibuang.
        """
        self._require_state()
        if counter is not None:
            self._check_index(counter)
            return self._block_at(counter)

        self._check_range(self._counter, 1)
        block = self._block_at(self._counter)
        self._reset(self._counter + 1)
        return block

    def combine(self, data, operation: KeystreamOperation = KeystreamOperation.ENCRYPT):
        """
        XOR ``data`` di tempat dengan keystream pada posisi saat ini.

        Enkripsi dan dekripsi identik. Panjang data bebas; pemanggilan
        berikutnya melanjutkan dari byte tempat pemanggilan ini berhenti.
        Mengembalikan ``data``.
        """
        if not isinstance(operation, KeystreamOperation):
            raise TypeError(f"operation must be a KeystreamOperation, not {operation!r}")
        self._require_state()

        view = _writable_view(data)
        if view is None:
            return data
        size = view.size

        cached = min(size, BLOCK_SIZE - self._index)
        need = size - cached
        blocks = -(-need // BLOCK_SIZE)
        if blocks:
            self._check_range(self._counter, blocks)

        ks = self._stream[self._index:self._index + cached]
        fresh = b"".join(self._block_at(self._counter + i) for i in range(blocks))
        ks += fresh[:need]

        np.bitwise_xor(view, np.frombuffer(ks, dtype=np.uint8), out=view)

        # posisi baru maju setelah buffer berisi hasil XOR
        if blocks:
            self._stream = fresh[-BLOCK_SIZE:]
            self._index = need - (blocks - 1) * BLOCK_SIZE
            self._set_counter(self._counter + blocks)
        else:
            self._index += cached
        return data

    def crypt(self, data) -> bytes:
        buf = bytearray(data)
        self.combine(buf)
        return bytes(buf)

    def keystream(self, length: int) -> bytes:
        return self.crypt(bytes(length))

    # ========== Internals ==========
    def _require_state(self) -> list[int]:
        if self._state is None:
            raise NotInitialized("ChaCha engine has no key and nonce, call initialize() first")
        return self._state

    def _check_index(self, index: int) -> None:
        if not 0 <= index <= self.max_counter:
            raise CounterOverflow(
                f"Block index {index} outside 0..{self.max_counter} for a {self.nonce_size}-byte nonce"
            )

    def _check_range(self, first: int, count: int) -> None:
        last = first + count - 1
        if last > self.max_counter:
            raise CounterOverflow(
                f"Keystream exhausted: block {last} exceeds counter limit {self.max_counter}"
            )

    def _block_at(self, counter: int) -> bytes:
        state = list(self._state)
        set_counter(state, counter, self._counter_words)
        return chacha_block(state, self.rounds)

    def _set_counter(self, counter: int) -> None:
        self._counter = counter
        # past the last block the words keep the final index; generation is refused
        set_counter(self._state, min(counter, self.max_counter), self._counter_words)

    def _reset(self, counter: int) -> None:
        self._set_counter(counter)
        self._stream = b""
        self._index = BLOCK_SIZE


def _writable_view(data) -> np.ndarray | None:
    try:
        mv = memoryview(data)
    except TypeError:
        raise TypeError(f"data must be a bytes-like object, not {type(data).__name__}") from None
    if mv.readonly:
        raise TypeError("data must be a mutable bytes-like object")
    if not mv.c_contiguous:
        raise TypeError("data must be C-contiguous")
    if not mv.nbytes:
        return None
    return np.frombuffer(mv, dtype=np.uint8)


def new(key: bytes, nonce: bytes, rounds: int = 20) -> ChaChaEngine:
    """
    Engine ber-key dengan layout mengikuti panjang nonce (8 atau 12 byte).
    """
    try:
        nonce_size = memoryview(nonce).nbytes
    except TypeError:
        raise TypeError(f"nonce must be a bytes-like object, not {type(nonce).__name__}") from None
    return ChaChaEngine(rounds, nonce_size, key, nonce)


class ChaCha8(ChaChaEngine):
    def __init__(self, key: bytes | None = None, nonce: bytes | None = None,
                 nonce_size: int = DEFAULT_NONCE_SIZE):
        super().__init__(8, nonce_size, key, nonce)


class ChaCha12(ChaChaEngine):
    def __init__(self, key: bytes | None = None, nonce: bytes | None = None,
                 nonce_size: int = DEFAULT_NONCE_SIZE):
        super().__init__(12, nonce_size, key, nonce)


class ChaCha20(ChaChaEngine):
    def __init__(self, key: bytes | None = None, nonce: bytes | None = None,
                 nonce_size: int = DEFAULT_NONCE_SIZE):
        super().__init__(20, nonce_size, key, nonce)
