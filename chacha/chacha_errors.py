class ChaChaError(Exception):
    """
    Kelas dasar semua error dari engine ChaCha.
    """


class InvalidKeyLength(ChaChaError, ValueError):
    pass


class InvalidNonceLength(ChaChaError, ValueError):
    pass


class InvalidRounds(ChaChaError, ValueError):
    pass


class CounterOverflow(ChaChaError, OverflowError):
    """
    Seek atau pembangkitan keystream melewati blok terakhir yang bisa dialamati counter.
    """


class NotInitialized(ChaChaError, RuntimeError):
    """
    Keystream diminta sebelum key dan nonce dimuat.
    """
