import json

import numpy as np
import pytest
from PIL import Image

import main
from chacha.chacha_encrypt import crypt_offset, encrypt_bytes

KEY_HEX = bytes(range(32)).hex()
NONCE_HEX = "0706050403020100"
DATA = bytes((i * 7) % 251 for i in range(200_000))


def test_file_round_trip(tmp_path):
    src = tmp_path / "plain.bin"
    enc = tmp_path / "plain.bin.enc"
    dec = tmp_path / "plain.bin.dec"
    src.write_bytes(DATA)

    args = ["--key", KEY_HEX, "--nonce", NONCE_HEX, "--rounds", "8"]
    assert main.main(["file", str(src), str(enc)] + args) == 0
    assert enc.read_bytes() == encrypt_bytes(bytes.fromhex(KEY_HEX), bytes.fromhex(NONCE_HEX), DATA, 8)

    assert main.main(["file", str(enc), str(dec)] + args) == 0
    assert dec.read_bytes() == DATA


def test_file_offset(tmp_path):
    src = tmp_path / "tail.bin"
    out = tmp_path / "tail.enc"
    src.write_bytes(DATA[:1000])
    argv = ["file", str(src), str(out), "--key", KEY_HEX, "--nonce", NONCE_HEX, "--offset", "77"]
    assert main.main(argv) == 0
    expected = crypt_offset(bytes.fromhex(KEY_HEX), bytes.fromhex(NONCE_HEX), 77, DATA[:1000])
    assert out.read_bytes() == expected


def test_file_bad_key_reports_error(tmp_path, capsys):
    src = tmp_path / "a.bin"
    src.write_bytes(b"abc")
    argv = ["file", str(src), str(tmp_path / "b.bin"), "--key", "00" * 16, "--nonce", NONCE_HEX]
    assert main.main(argv) == 1
    assert "chacha error" in capsys.readouterr().err


def test_image(tmp_path, capsys):
    img = np.random.default_rng(3).integers(0, 256, size=(8, 10, 3), dtype=np.uint8)
    path = tmp_path / "in.png"
    Image.fromarray(img).save(path)
    out_dir = tmp_path / "out"

    argv = ["image", "--image", str(path), "--output-dir", str(out_dir), "--rounds", "12"]
    assert main.main(argv) == 0

    decrypted = np.array(Image.open(out_dir / "decrypted.png"))
    assert np.array_equal(decrypted, img)
    meta = json.loads((out_dir / "meta.json").read_text(encoding="utf-8"))
    assert meta["rounds"] == 12
    assert len(bytes.fromhex(meta["key_hex"])) == 32
    assert "Loaded image" in capsys.readouterr().out


def test_analyze(capsys):
    assert main.main(["analyze", "--key", KEY_HEX, "--nonce", NONCE_HEX, "--blocks", "4", "--repeats", "1"]) == 0
    out = capsys.readouterr().out
    assert "ChaCha8 vs ChaCha20" in out
    assert "== Throughput ==" in out


def test_file_past_counter_limit_leaves_no_output(tmp_path, capsys):
    nonce_hex = bytes(12).hex()
    last_block = (2 ** 32 - 1) * 64
    src = tmp_path / "big.bin"
    out = tmp_path / "big.enc"

    src.write_bytes(DATA[:64])
    argv = ["file", str(src), str(out), "--key", KEY_HEX, "--nonce", nonce_hex, "--offset", str(last_block)]
    assert main.main(argv) == 0
    assert len(out.read_bytes()) == 64
    out.unlink()

    src.write_bytes(DATA[:65])
    assert main.main(argv) == 1
    assert not out.exists()
    assert "chacha error" in capsys.readouterr().err


def test_unexpected_errors_are_not_reported_as_cipher_errors(tmp_path, monkeypatch):
    src = tmp_path / "a.bin"
    src.write_bytes(b"abc")

    def broken_new(*args, **kwargs):
        raise ValueError("internal failure")

    monkeypatch.setattr(main, "new", broken_new)
    argv = ["file", str(src), str(tmp_path / "b.bin"), "--key", KEY_HEX, "--nonce", NONCE_HEX]
    with pytest.raises(ValueError):
        main.main(argv)
