import argparse
import os
import sys
import json
from pathlib import Path

import numpy as np
from PIL import Image

from diferensial.keystream_diff import compare_keystreams, serial_correlation

from efisiensi.algorithm_speed import measure_time, measure_throughput

from chacha.chacha_errors import ChaChaError, CounterOverflow
from chacha.chacha_engine import new
from chacha.chacha_key_schedule import KEY_SIZE, DEFAULT_NONCE_SIZE, ROUNDS_SUPPORTED
from chacha.chacha_encrypt import encrypt_image_to_image, generate_keystream
from chacha.chacha_decrypt import decrypt_image_to_image

# Read 64 KiB of a file at a time
CHUNK_SIZE = 1 << 16


def load_image(path: str) -> np.ndarray:
    img = Image.open(path)
    if img.mode not in ("L", "RGB"):
        img = img.convert("RGB")
    return np.array(img, dtype=np.uint8)


def save_image(arr: np.ndarray, path: str) -> None:
    Image.fromarray(arr).save(path)


def ensure_dir(path: str) -> None:
    Path(path).mkdir(parents=True, exist_ok=True)


def hex_bytes(value: str) -> bytes:
    try:
        return bytes.fromhex(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a hex string: {value!r}")


def key_and_nonce(args: argparse.Namespace) -> tuple[bytes, bytes]:
    key = args.key if args.key is not None else os.urandom(KEY_SIZE)
    nonce = args.nonce if args.nonce is not None else os.urandom(DEFAULT_NONCE_SIZE)
    return key, nonce


def run_file(args: argparse.Namespace) -> None:
    engine = new(args.key, args.nonce, args.rounds)
    if args.offset:
        engine.seek_offset(args.offset)

    # whole keystream range is checked before OUTFILE is created
    size = os.path.getsize(args.infile)
    if size and (args.offset + size - 1) // 64 > engine.max_counter:
        raise CounterOverflow(
            f"{args.infile} needs keystream past block {engine.max_counter} from offset {args.offset}"
        )

    buffer = bytearray(CHUNK_SIZE)
    total = 0
    elapsed = 0.0
    with open(args.infile, "rb") as src, open(args.outfile, "wb") as dst:
        while True:
            read_size = src.readinto(buffer)
            if not read_size:
                break
            view = memoryview(buffer)[:read_size]
            t, _ = measure_time(engine.combine, view)
            dst.write(view)
            elapsed += t
            total += read_size

    print(f"{args.infile} {total}B -> <ChaCha{args.rounds}> -> {args.outfile}")
    if args.verbose and elapsed > 0:
        print(f"[{elapsed:.2f} s ({total / elapsed / 1024:.1f} KiB/s)]")


def run_image(args: argparse.Namespace) -> None:
    key, nonce = key_and_nonce(args)
    img = load_image(args.image)
    print(f"Loaded image: {args.image} shape={img.shape}")

    out_dir = args.output_dir
    ensure_dir(out_dir)

    t_enc, cipher_img = measure_time(encrypt_image_to_image, img, key, nonce, args.rounds)
    plain_img = decrypt_image_to_image(cipher_img, key, nonce, args.rounds)
    if not np.array_equal(plain_img, img):
        raise ValueError("decrypted image does not match the original")

    save_image(cipher_img, os.path.join(out_dir, "cipher.png"))
    save_image(plain_img, os.path.join(out_dir, "decrypted.png"))
    with open(os.path.join(out_dir, "meta.json"), "w", encoding="utf-8") as f:
        json.dump({"rounds": args.rounds, "key_hex": key.hex(), "nonce_hex": nonce.hex()}, f, indent=2)

    print(f"ChaCha{args.rounds}: wrote {out_dir}/cipher.png and {out_dir}/decrypted.png")
    if args.verbose:
        print(f"ChaCha{args.rounds} encryption time: {t_enc:.6f} s")


def run_analyze(args: argparse.Namespace) -> None:
    key, nonce = key_and_nonce(args)
    length = args.blocks * 64

    streams = {r: generate_keystream(key, nonce, length, r) for r in ROUNDS_SUPPORTED}

    print("== Keystream Serial Correlation ==")
    for r, ks in streams.items():
        print(f"ChaCha{r}: {serial_correlation(ks):.6f}")

    print("\n== Differential Metrics Between Variants ==")
    for i, r1 in enumerate(ROUNDS_SUPPORTED):
        for r2 in ROUNDS_SUPPORTED[i + 1:]:
            m = compare_keystreams(streams[r1], streams[r2])
            print(f"ChaCha{r1} vs ChaCha{r2}: change={m['change_rate']:.4f}%, "
                  f"mean abs diff={m['mean_abs_diff']:.4f}%")

    print("\n== Throughput ==")
    repeats = max(1, args.repeats)
    for r in ROUNDS_SUPPORTED:
        rate = measure_throughput(r, length, repeats=repeats)
        print(f"ChaCha{r} avg over {repeats} run(s): {rate / 1024:.1f} KiB/s")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="ChaCha8/12/20 stream cipher tool.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Print timing details.")
    sub = parser.add_subparsers(dest="command", required=True)

    def add_cipher_args(p, required):
        p.add_argument("--key", type=hex_bytes, required=required, help="32-byte key as hex.")
        p.add_argument("--nonce", type=hex_bytes, required=required, help="8- or 12-byte nonce as hex.")
        p.add_argument("--rounds", type=int, choices=ROUNDS_SUPPORTED, default=20, help="ChaCha round count.")

    p_file = sub.add_parser("file", help="Encrypt or decrypt a file (same operation).")
    p_file.add_argument("infile", metavar="INFILE")
    p_file.add_argument("outfile", metavar="OUTFILE")
    add_cipher_args(p_file, required=True)
    p_file.add_argument("--offset", type=int, default=0, help="Keystream byte offset to start from.")
    p_file.set_defaults(func=run_file)

    p_image = sub.add_parser("image", help="Encrypt an image and write cipher/decrypted copies.")
    p_image.add_argument("--image", required=True, help="Path to input image.")
    add_cipher_args(p_image, required=False)
    p_image.add_argument("--output-dir", default="outputs", help="Directory to store results.")
    p_image.set_defaults(func=run_image)

    p_analyze = sub.add_parser("analyze", help="Compare keystreams and speed of the round variants.")
    p_analyze.add_argument("--key", type=hex_bytes, help="32-byte key as hex.")
    p_analyze.add_argument("--nonce", type=hex_bytes, help="8- or 12-byte nonce as hex.")
    p_analyze.add_argument("--blocks", type=int, default=256, help="Keystream blocks per variant.")
    p_analyze.add_argument("--repeats", type=int, default=3, help="Repeats for timing average.")
    p_analyze.set_defaults(func=run_analyze)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        args.func(args)
    except ChaChaError as exc:
        print(f"chacha error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
